from dataclasses import dataclass


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retries with exponential backoff and model degradation.

    Attempt 0 is the first call; attempt ``n >= 1`` is retry ``n`` and waits
    ``base_delay ** n`` seconds before running. From ``degrade_from_attempt`` on
    the secondary model is used.
    """

    max_retries: int = 2
    base_delay: float = 2.0
    degrade_from_attempt: int = 1

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def delay_before(self, attempt: int) -> float:
        if attempt <= 0:
            return 0.0
        return float(self.base_delay ** attempt)

    def model_for(self, attempt: int, primary: str, secondary: str) -> str:
        return secondary if attempt >= self.degrade_from_attempt else primary

    def can_retry(self, attempt: int) -> bool:
        return attempt < self.max_retries
