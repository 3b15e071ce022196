"""
Scorecard Optimizer - Confidence Engine

Statistical helpers for A/B test analysis: Wilson score intervals,
a 2x2 chi-squared test, and the approximate normal / chi-squared CDFs
they rely on.

The CDFs are closed-form approximations (Abramowitz & Stegun 26.2.17 for
the normal CDF). Expect agreement with a statistics library to 2-3
significant digits, not more.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

logger = logging.getLogger('scorecard.abtest.confidence')


@dataclass
class ConversionCounts:
    """Conversions out of total assignments for one variant."""
    conversions: int
    total: int

    @property
    def non_conversions(self) -> int:
        return self.total - self.conversions


class ConfidenceEngine:
    """
    Calculates confidence intervals and significance for conversion data.
    """

    # Two-sided critical values keyed by significance level
    Z_ALPHA = {
        0.10: 1.645,
        0.05: 1.960,
        0.01: 2.576
    }

    # One-sided z-scores keyed by statistical power
    Z_POWER = {
        0.80: 0.842,
        0.90: 1.282,
        0.95: 1.645
    }

    # Polynomial coefficients for the normal CDF approximation
    _CDF_P = 0.2316419
    _CDF_D = 0.3989423
    _CDF_B = (0.3193815, -0.3565638, 1.781478, -1.821256, 1.330274)

    def __init__(self, z: float = 1.96):
        """
        Args:
            z: Critical value for confidence intervals (1.96 = 95%)
        """
        self.z = z

    def normal_cdf(self, x: float) -> float:
        """Standard normal CDF, polynomial approximation."""
        t = 1 / (1 + self._CDF_P * abs(x))
        d = self._CDF_D * math.exp(-x * x / 2)

        b1, b2, b3, b4, b5 = self._CDF_B
        p = d * t * (b1 + t * (b2 + t * (b3 + t * (b4 + t * b5))))

        return 1 - p if x > 0 else p

    def chi_squared_cdf(self, x: float, k: int) -> float:
        """
        Approximate chi-squared CDF.

        Exact forms for 1 and 2 degrees of freedom (given the normal
        CDF), a normal approximation otherwise.
        """
        if x <= 0:
            return 0.0

        if k == 1:
            return 2 * self.normal_cdf(math.sqrt(x)) - 1

        if k == 2:
            return 1 - math.exp(-x / 2)

        z = math.sqrt(2 * x) - math.sqrt(2 * k - 1)
        return self.normal_cdf(z)

    def wilson_interval(
        self,
        conversions: int,
        total: int,
        z: Optional[float] = None
    ) -> Tuple[float, float]:
        """
        Wilson score interval for a conversion rate.

        Args:
            conversions: Number of conversions
            total: Number of assignments
            z: Critical value (the engine default if omitted)

        Returns:
            (lower, upper); (0.0, 0.0) when total is zero
        """
        if total <= 0:
            return 0.0, 0.0

        p = conversions / total
        if z is None:
            z = self.z
        z2 = z * z

        center = p + z2 / (2 * total)
        margin = z * math.sqrt((p * (1 - p) + z2 / (4 * total)) / total)
        denominator = 1 + z2 / total

        return (center - margin) / denominator, (center + margin) / denominator

    def chi_squared_statistic(
        self,
        control: ConversionCounts,
        treatment: ConversionCounts
    ) -> float:
        """
        Pearson chi-squared statistic for a 2x2 conversion table.

        Raises:
            ZeroDivisionError: If any expected cell count is zero
        """
        total_conversions = control.conversions + treatment.conversions
        total_non_conversions = control.non_conversions + treatment.non_conversions
        total_samples = control.total + treatment.total

        conversion_share = total_conversions / total_samples
        non_conversion_share = total_non_conversions / total_samples

        cells = (
            (control.conversions, control.total * conversion_share),
            (control.non_conversions, control.total * non_conversion_share),
            (treatment.conversions, treatment.total * conversion_share),
            (treatment.non_conversions, treatment.total * non_conversion_share),
        )

        return sum((observed - expected) ** 2 / expected for observed, expected in cells)

    def chi_squared_p_value(
        self,
        control: ConversionCounts,
        treatment: ConversionCounts
    ) -> float:
        """
        p-value for a difference in conversion rates (1 degree of freedom).

        Returns 1.0 when the table has an empty row or column, where the
        statistic is undefined.
        """
        try:
            chi_squared = self.chi_squared_statistic(control, treatment)
        except ZeroDivisionError:
            logger.debug(
                f"Chi-squared undefined for {control} vs {treatment}; reporting p=1.0"
            )
            return 1.0

        return 1 - self.chi_squared_cdf(chi_squared, 1)

    def required_sample_size(
        self,
        baseline_rate: float,
        minimum_detectable_effect: float,
        alpha: float = 0.05,
        power: float = 0.80
    ) -> int:
        """
        Sample size per variant needed to detect an absolute lift.

        Args:
            baseline_rate: Expected control conversion rate
            minimum_detectable_effect: Absolute difference to detect
            alpha: Significance level
            power: Desired statistical power

        Returns:
            Sample size per group (at least 10)
        """
        if minimum_detectable_effect == 0:
            return 10000

        p1 = baseline_rate
        p2 = min(1.0, p1 + minimum_detectable_effect)

        z_alpha = self.Z_ALPHA.get(alpha, 1.96)
        z_power = self.Z_POWER.get(power, 0.842)

        pooled_p = (p1 + p2) / 2
        numerator = (z_alpha * math.sqrt(2 * pooled_p * (1 - pooled_p)) +
                     z_power * math.sqrt(p1 * (1 - p1) + p2 * (1 - p2))) ** 2

        n = numerator / minimum_detectable_effect ** 2

        return max(10, int(math.ceil(n)))
