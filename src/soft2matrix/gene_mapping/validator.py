"""Quality reporting for platform gene symbol resolution.

Unresolved symbols never abort a conversion; these gates only grade the
resolution rate and produce actionable reports for manual review.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class ResolutionReport:
    """Summary of gene symbol resolution over one platform table.

    Attributes:
        total_tokens: Gene symbol tokens seen in the platform annotation
        resolved_tokens: Tokens that resolved to an HGNC id
        annotated_probesets: Probesets with a non-empty gene symbol field
        indexed_probesets: Probesets with at least one resolved gene
        unresolved_symbols: Distinct unresolved tokens, first-seen order
        success_rate: Fraction of tokens resolved (0-1)
    """
    total_tokens: int = 0
    resolved_tokens: int = 0
    annotated_probesets: int = 0
    indexed_probesets: int = 0
    unresolved_symbols: list[str] = field(default_factory=list)
    success_rate: float = 0.0

    def __post_init__(self):
        self.update_rate()

    def update_rate(self) -> None:
        """Recalculate success_rate from the token counts."""
        if self.total_tokens > 0:
            self.success_rate = self.resolved_tokens / self.total_tokens
        else:
            self.success_rate = 0.0


@dataclass
class ValidationResult:
    """Result of a validation check.

    Attributes:
        passed: Whether validation passed
        messages: List of validation messages (warnings, errors)
        success_rate: Symbol resolution rate (0-1)
    """
    passed: bool
    messages: list[str] = field(default_factory=list)
    success_rate: float = 0.0


class ResolutionValidator:
    """Grades resolution reports against configurable rate thresholds."""

    def __init__(
        self,
        min_success_rate: float = 0.70,
        warn_threshold: float = 0.85
    ):
        """Initialize resolution validator.

        Args:
            min_success_rate: Minimum token resolution rate to pass (default: 0.70)
            warn_threshold: Rate below this triggers a warning (default: 0.85)
        """
        self.min_success_rate = min_success_rate
        self.warn_threshold = warn_threshold

    def validate(self, report: ResolutionReport) -> ValidationResult:
        """Grade a resolution report.

        Args:
            report: ResolutionReport from a platform table

        Returns:
            ValidationResult with pass/fail status and messages
        """
        messages: list[str] = []
        rate = report.success_rate
        counts = f"{report.resolved_tokens}/{report.total_tokens} gene symbols"

        if report.total_tokens == 0:
            messages.append("FAILED: platform table contained no gene symbol annotations")
            passed = False
        elif rate < self.min_success_rate:
            messages.append(
                f"FAILED: symbol resolution rate {rate:.1%} is below "
                f"minimum threshold {self.min_success_rate:.1%} ({counts})"
            )
            messages.append(
                f"Unresolved symbols: {len(report.unresolved_symbols)} "
                f"(first 10: {report.unresolved_symbols[:10]})"
            )
            passed = False
        elif rate < self.warn_threshold:
            messages.append(
                f"WARNING: symbol resolution rate {rate:.1%} is below "
                f"warning threshold {self.warn_threshold:.1%} ({counts})"
            )
            messages.append(
                f"Consider reviewing {len(report.unresolved_symbols)} unresolved symbols"
            )
            passed = True
        else:
            messages.append(f"PASSED: symbol resolution rate {rate:.1%} ({counts})")
            passed = True

        messages.append(
            f"Probesets indexed: {report.indexed_probesets}/{report.annotated_probesets} "
            "annotated probesets"
        )

        logger.info(
            f"Resolution validation: {'PASSED' if passed else 'FAILED'} ({rate:.1%})"
        )

        return ValidationResult(passed=passed, messages=messages, success_rate=rate)

    def save_unresolved_report(
        self,
        report: ResolutionReport,
        output_path: Path
    ) -> None:
        """Save the unresolved gene symbols to a file for manual review.

        Args:
            report: ResolutionReport containing unresolved symbols
            output_path: Path to output file
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")

        with output_path.open('w') as f:
            f.write("# Unresolved gene symbols\n")
            f.write(f"# Generated: {timestamp}\n")
            f.write(f"# Total unresolved: {len(report.unresolved_symbols)}\n")
            f.write(f"# Success rate: {report.success_rate:.1%}\n")
            f.write("#\n")
            for symbol in report.unresolved_symbols:
                f.write(f"{symbol}\n")

        logger.info(
            f"Saved {len(report.unresolved_symbols)} unresolved symbols to {output_path}"
        )
