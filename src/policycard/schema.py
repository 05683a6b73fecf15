"""
Schema definitions for policycard.

This module defines all the Pydantic models used throughout policycard:
- PolicyCard/Rule/Condition: The governance document and its rule set
- EscalationTrigger/KpiThreshold/MonitoringDetector: Optional policy sections
- EvaluationResult/Violation/RuleWarning: Outcome of evaluating one capability
- AuditEvidence/AuditReport: The tamper-evident audit trail

Design Decisions:
    - Policy models are immutable (frozen=True) once loaded
    - Operators, effects and KPI statuses are closed enumerations
    - Operand shape is checked against the operator at load time
    - Compliance metadata itself is never modelled: it stays an open mapping
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


# =============================================================================
# Enums
# =============================================================================


class Effect(str, Enum):
    """What happens when a rule's condition matches."""

    DENY = "deny"
    WARN = "warn"


class Operator(str, Enum):
    """
    The fixed set of condition operators.

    Anything not listed here is rejected when the policy card is loaded.
    """

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    ANY_OF = "any_of"
    NOT_ANY_OF = "not_any_of"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    EXISTS = "exists"
    NOT_EXISTS = "not_exists"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    GREATER_THAN_OR_EQUAL = "greater_than_or_equal"
    LESS_THAN_OR_EQUAL = "less_than_or_equal"


SCALAR_OPERATORS = frozenset({
    Operator.EQUALS,
    Operator.NOT_EQUALS,
    Operator.CONTAINS,
    Operator.NOT_CONTAINS,
})
LIST_OPERATORS = frozenset({Operator.ANY_OF, Operator.NOT_ANY_OF})
PRESENCE_OPERATORS = frozenset({Operator.EXISTS, Operator.NOT_EXISTS})
NUMERIC_OPERATORS = frozenset({
    Operator.GREATER_THAN,
    Operator.LESS_THAN,
    Operator.GREATER_THAN_OR_EQUAL,
    Operator.LESS_THAN_OR_EQUAL,
})


class Comparator(str, Enum):
    """Comparison operators allowed in escalation trigger expressions."""

    GT = ">"
    LT = "<"
    GE = ">="
    LE = "<="
    EQ = "=="
    NE = "!="


class KpiStatus(str, Enum):
    """Health band of a KPI, from best to worst."""

    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"
    CRITICAL = "critical"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


# =============================================================================
# Policy Card Models
# =============================================================================


class Condition(BaseModel):
    """
    A (field path, operator, operand) triple.

    The operand may be given as ``value`` (a scalar) or ``values`` (a list).
    Which shape is required depends on the operator:

        equals, not_equals, contains, not_contains  -> scalar
        any_of, not_any_of                          -> list
        exists, not_exists                          -> none
        greater_than, less_than, ...                -> number

    Attributes:
        field: Dotted path into the compliance metadata
        operator: One of the Operator members
        value: Scalar operand
        values: List operand
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    field: str = Field(
        ...,
        description="Dotted path into the compliance metadata",
        min_length=1,
    )
    operator: Operator = Field(..., description="Condition operator")
    value: Any = Field(default=None, description="Scalar operand")
    values: list[Any] | None = Field(default=None, description="List operand")

    @property
    def operand(self) -> Any:
        """The operand the operator is applied with."""
        if self.values is not None:
            return self.values
        return self.value

    @model_validator(mode="after")
    def check_operand(self) -> "Condition":
        """Reject operands whose shape does not fit the operator."""
        op = self.operator
        has_values = self.values is not None
        # A null ``value`` beside ``values`` counts as not supplied; dumped
        # cards carry both keys.
        has_value = "value" in self.model_fields_set and not (
            has_values and self.value is None
        )

        if op in PRESENCE_OPERATORS:
            return self

        if has_value and has_values:
            msg = f"Operator '{op.value}' takes either 'value' or 'values', not both"
            raise ValueError(msg)

        if op in LIST_OPERATORS:
            if has_values or isinstance(self.value, list):
                return self
            msg = f"Operator '{op.value}' requires a list operand in 'values'"
            raise ValueError(msg)

        if has_values:
            msg = f"Operator '{op.value}' requires a scalar operand in 'value', got a list"
            raise ValueError(msg)
        if not has_value:
            msg = f"Operator '{op.value}' requires an operand in 'value'"
            raise ValueError(msg)
        if isinstance(self.value, (list, dict)):
            msg = f"Operator '{op.value}' requires a scalar operand, got {type(self.value).__name__}"
            raise ValueError(msg)
        if op in NUMERIC_OPERATORS and not _is_number(self.value):
            msg = f"Operator '{op.value}' requires a numeric operand, got {self.value!r}"
            raise ValueError(msg)
        return self


class Rule(BaseModel):
    """
    A named deny/warn predicate over compliance metadata.

    Attributes:
        id: Identifier, unique within the policy card
        effect: deny (makes the capability non-compliant) or warn
        condition: The predicate
        reason: Human-readable explanation reported when the rule matches
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(..., description="Rule identifier", min_length=1)
    effect: Effect = Field(..., description="Effect when the condition matches")
    condition: Condition = Field(..., description="The rule predicate")
    reason: str = Field(..., description="Explanation when matched", min_length=1)


class Scope(BaseModel):
    """
    Deployment context the policy card applies to.

    All values are free-form tags; nothing is enumerated.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    ai_act_risk_level: str | None = Field(default=None, description="Risk level tag")
    geography: list[str] = Field(default_factory=list, description="Geography tags")
    intended_uses: list[str] = Field(default_factory=list, description="Intended uses")


class TriggerExpression(BaseModel):
    """A parsed ``<identifier> <op> <number>`` escalation expression."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    identifier: str
    comparator: Comparator
    literal: float


class EscalationTrigger(BaseModel):
    """
    A condition that flags an evaluation for out-of-band review.

    The condition text is parsed once, when the model is built. If it does
    not fit the single-comparison grammar, ``expression`` is None and the
    trigger never fires. A supplied ``expression`` is discarded: it is
    always derived from ``condition``. Unknown keys are ignored.

    Attributes:
        condition: Free-text expression, e.g. ``amount > 10000``
        action: Action tag, e.g. ``human_review``
        expression: Parsed form of ``condition``
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    condition: str = Field(..., description="Trigger expression text")
    action: str = Field(..., description="Action tag")
    expression: TriggerExpression | None = Field(
        default=None,
        description="Parsed expression (None if unparseable)",
    )

    @model_validator(mode="before")
    @classmethod
    def parse_condition(cls, data: Any) -> Any:
        """Parse the condition text into a TriggerExpression."""
        if isinstance(data, dict):
            from policycard.policy.escalation import parse_trigger_expression

            data = {k: v for k, v in data.items() if k != "expression"}
            condition = data.get("condition")
            if isinstance(condition, str):
                data["expression"] = parse_trigger_expression(condition)
        return data


class EscalationConfig(BaseModel):
    """The ``escalation`` section of a policy card."""

    model_config = ConfigDict(frozen=True, extra="allow")

    triggers: list[EscalationTrigger] = Field(default_factory=list)


class MonitoringDetector(BaseModel):
    """A runtime detector declared by the policy card."""

    model_config = ConfigDict(frozen=True, extra="allow")

    name: str = Field(..., min_length=1)
    threshold: Any = Field(default=None)
    action: str | None = Field(default=None)


class MonitoringConfig(BaseModel):
    """The ``monitoring`` section of a policy card."""

    model_config = ConfigDict(frozen=True, extra="allow")

    detectors: list[MonitoringDetector] = Field(default_factory=list)


class KpiThreshold(BaseModel):
    """
    Target/critical pair for an aggregate metric.

    Attributes:
        metric: Metric name, e.g. ``compliance_rate``
        target: Value at or above which the KPI passes
        critical_threshold: Value below which the KPI is critical
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    metric: str = Field(..., min_length=1)
    target: float
    critical_threshold: float | None = None

    @model_validator(mode="after")
    def check_bands(self) -> "KpiThreshold":
        """The critical band must lie below the target."""
        if self.critical_threshold is not None and self.critical_threshold > self.target:
            msg = (
                f"critical_threshold {self.critical_threshold} is above "
                f"target {self.target} for metric '{self.metric}'"
            )
            raise ValueError(msg)
        return self


class KpiThresholdsConfig(BaseModel):
    """The ``kpis_thresholds`` section of a policy card."""

    model_config = ConfigDict(frozen=True, extra="allow")

    thresholds: list[KpiThreshold] = Field(default_factory=list)


class PolicyCard(BaseModel):
    """
    A complete policy card.

    Attributes:
        policy_card_version: Document schema version
        name: Policy card name (also seeds the evidence hash chain)
        scope: Deployment context
        rules: Ordered rule set
        escalation: Escalation triggers
        monitoring: Runtime detectors
        kpis_thresholds: KPI target/critical pairs
        assurance_mapping: Framework name -> control references
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    policy_card_version: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    scope: Scope
    rules: list[Rule]
    escalation: EscalationConfig = Field(default_factory=EscalationConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)
    kpis_thresholds: KpiThresholdsConfig = Field(default_factory=KpiThresholdsConfig)
    assurance_mapping: dict[str, list[str]] = Field(default_factory=dict)

    @field_validator("policy_card_version", mode="before")
    @classmethod
    def coerce_version(cls, v: Any) -> Any:
        """YAML reads ``1.0`` as a float; keep it as text."""
        if _is_number(v):
            return str(v)
        return v

    @model_validator(mode="after")
    def check_unique_rule_ids(self) -> "PolicyCard":
        """Rule ids must be unique within the card."""
        duplicates = find_duplicate_rule_ids(rule.id for rule in self.rules)
        if duplicates:
            raise ValueError(duplicate_rule_ids_message(duplicates))
        return self

    @property
    def triggers(self) -> list[EscalationTrigger]:
        """Shortcut for ``escalation.triggers``."""
        return self.escalation.triggers

    @property
    def thresholds(self) -> list[KpiThreshold]:
        """Shortcut for ``kpis_thresholds.thresholds``."""
        return self.kpis_thresholds.thresholds


def find_duplicate_rule_ids(rule_ids: Any) -> list[str]:
    """Return rule ids that occur more than once, in first-seen order."""
    seen: set[str] = set()
    duplicates: list[str] = []
    for rule_id in rule_ids:
        if rule_id in seen and rule_id not in duplicates:
            duplicates.append(rule_id)
        seen.add(rule_id)
    return duplicates


def duplicate_rule_ids_message(duplicates: list[str]) -> str:
    """Validation message for duplicate rule ids."""
    return "Duplicate rule id(s): " + ", ".join(repr(d) for d in duplicates)


# =============================================================================
# Evaluation Models
# =============================================================================


class Violation(BaseModel):
    """A matched deny rule."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    rule_id: str
    reason: str


class RuleWarning(BaseModel):
    """A matched warn rule."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    rule_id: str
    reason: str


class EvaluationResult(BaseModel):
    """
    Outcome of evaluating one capability against a policy card.

    ``compliant`` is true exactly when ``violations`` is empty; warnings
    never affect it. Use ``from_matches`` to build one.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    capability_name: str
    compliant: bool
    violations: list[Violation] = Field(default_factory=list)
    warnings: list[RuleWarning] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_compliant(self) -> "EvaluationResult":
        """compliant must agree with violations."""
        if self.compliant != (not self.violations):
            msg = "compliant must be true exactly when there are no violations"
            raise ValueError(msg)
        return self

    @classmethod
    def from_matches(
        cls,
        capability_name: str,
        violations: list[Violation],
        warnings: list[RuleWarning],
    ) -> "EvaluationResult":
        """Create a result, deriving ``compliant`` from the violations."""
        return cls(
            capability_name=capability_name,
            compliant=not violations,
            violations=violations,
            warnings=warnings,
        )


# =============================================================================
# Audit Models
# =============================================================================


class AuditEvidence(BaseModel):
    """
    Immutable record of one evaluation.

    Attributes:
        sequence: 1-based position in the audit log
        capability_name: Name of the evaluated capability
        timestamp: When the evaluation was recorded (UTC)
        evaluation: The evaluation outcome
        metadata_hash: ``sha256:<hex>`` of the canonical metadata
        context: Runtime escalation context supplied with the evaluation
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    sequence: int = Field(..., ge=1)
    capability_name: str
    timestamp: datetime
    evaluation: EvaluationResult
    metadata_hash: str
    context: dict[str, Any] | None = None


class AuditSummary(BaseModel):
    """Counts over the evidence in a report."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    total: int = Field(default=0, ge=0)
    compliant: int = Field(default=0, ge=0)
    rejected: int = Field(default=0, ge=0)
    warned: int = Field(default=0, ge=0)
    escalated: int = Field(default=0, ge=0)


class KpiResult(BaseModel):
    """A KPI's computed value and health band."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    metric: str
    value: float | None
    target: float
    critical_threshold: float | None = None
    status: KpiStatus
    note: str | None = None


class AuditReport(BaseModel):
    """
    Aggregated audit trail for a reporting period.

    Attributes:
        audit_id: Identifier of the reporting period
        policy_name: Name of the policy card evaluated against
        generated_at: When this report was produced
        period_start: Start of the reporting window
        period_end: End of the reporting window
        summary: Evidence counts
        kpi_results: Classified KPIs
        assurance_coverage: Framework -> control references
        evidence: Evidence entries in log order
        evidence_hash: Chained digest over the evidence
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    audit_id: str
    policy_name: str
    generated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    period_start: datetime
    period_end: datetime
    summary: AuditSummary
    kpi_results: list[KpiResult] = Field(default_factory=list)
    assurance_coverage: dict[str, list[str]] = Field(default_factory=dict)
    evidence: list[AuditEvidence] = Field(default_factory=list)
    evidence_hash: str
