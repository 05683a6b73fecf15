"""
Exception hierarchy for policycard.

All policycard exceptions inherit from PolicyCardError, allowing callers to
catch every library-specific exception with a single except clause.

Exception Categories:
    - PolicyCardValidationError: Policy card failed validation at load time
    - PolicyCardNotFoundError: Policy card file does not exist
    - MetadataParseError: Embedded compliance metadata could not be decoded
    - ReportIntegrityError: Evidence hash chain does not verify

Evaluation never raises: malformed metadata and unevaluable escalation
triggers resolve to fail-safe values instead. Errors here are raised only
at the edges (loading, parsing discovered tools, verifying reports).
"""

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Policy card errors: 1xxx
ERROR_POLICY_CARD_INVALID = 1001
ERROR_POLICY_CARD_NOT_FOUND = 1002

# Metadata errors: 2xxx
ERROR_METADATA_PARSE = 2001

# Report errors: 3xxx
ERROR_REPORT_INTEGRITY = 3001


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class PolicyCardError(Exception):
    """
    Base exception for all policycard errors.

    Attributes:
        message: Human-readable error description
        code: Numeric error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: int = 0
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Format error for display."""
        parts = [f"[E{self.code}] {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def __repr__(self) -> str:
        """Format error for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Policy Card Errors
# =============================================================================


@dataclass
class PolicyCardValidationError(PolicyCardError):
    """
    Raised when a policy card fails validation.

    Carries every issue found, not just the first one.

    Attributes:
        issues: List of (location, message) pairs
    """

    issues: list[tuple[str, str]] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            count = len(self.issues)
            noun = "issue" if count == 1 else "issues"
            details = "; ".join(
                f"{loc}: {msg}" if loc else msg for loc, msg in self.issues
            )
            self.message = f"Invalid policy card ({count} {noun}): {details}"
        if self.code == 0:
            self.code = ERROR_POLICY_CARD_INVALID
        self.context["issues"] = [
            {"location": loc, "message": msg} for loc, msg in self.issues
        ]


@dataclass
class PolicyCardNotFoundError(PolicyCardError):
    """Raised when a policy card file does not exist."""

    path: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Policy card not found: {self.path}"
        if self.code == 0:
            self.code = ERROR_POLICY_CARD_NOT_FOUND
        if not self.suggestion:
            self.suggestion = "Check the path to the policy card YAML file"
        self.context["path"] = self.path


# =============================================================================
# Metadata Errors
# =============================================================================


@dataclass
class MetadataParseError(PolicyCardError):
    """Raised when an embedded compliance metadata blob cannot be decoded."""

    capability_name: str = ""
    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = (
                f"Could not parse compliance metadata for {self.capability_name}: "
                f"{self.underlying_error}"
            )
        if self.code == 0:
            self.code = ERROR_METADATA_PARSE
        self.context.update({
            "capability_name": self.capability_name,
            "underlying_error": self.underlying_error,
        })


# =============================================================================
# Report Errors
# =============================================================================


@dataclass
class ReportIntegrityError(PolicyCardError):
    """Raised when a report's evidence hash does not match its evidence."""

    audit_id: str = ""
    expected_hash: str = ""
    actual_hash: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = (
                f"Evidence hash mismatch for audit {self.audit_id}: "
                f"recorded {self.expected_hash[:15]}..., "
                f"recomputed {self.actual_hash[:15]}..."
            )
        if self.code == 0:
            self.code = ERROR_REPORT_INTEGRITY
        if not self.suggestion:
            self.suggestion = "The evidence log was altered after the report was generated"
        self.context.update({
            "audit_id": self.audit_id,
            "expected_hash": self.expected_hash,
            "actual_hash": self.actual_hash,
        })
