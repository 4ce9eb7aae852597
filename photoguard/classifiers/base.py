"""Risk classifier interface used by the provider adapters."""

from typing import Protocol, TypeVar

T_co = TypeVar("T_co", covariant=True)


class RiskClassifier(Protocol[T_co]):
    """
    A vision backend that scores an encoded image.

    Implementations return their provider-native prediction structure;
    mapping it to a ModerationResult is the adapter's job. Failures of
    the backend itself (network, credentials, quota, inference) raise a
    ProviderError subclass and are never reported as risky content.
    """

    def is_available(self) -> bool:
        ...

    async def classify(self, data: bytes) -> T_co:
        ...
