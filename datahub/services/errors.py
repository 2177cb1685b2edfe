class FulfillmentError(Exception):
    """Base error for the fulfillment pipeline.

    `retryable` decides whether the queue processor spends a retry on it or
    fails the order straight away.
    """

    kind = "fulfillment_error"
    retryable = True

    def __init__(self, message: str, *, status_code: int | None = None, raw=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.raw = raw


class InvalidInput(FulfillmentError):
    kind = "invalid_input"
    retryable = False


class InvalidPhone(InvalidInput):
    pass


class InvalidVolume(InvalidInput):
    pass


class NoOfferAvailable(FulfillmentError):
    kind = "no_offer_available"
    retryable = False


class ProviderUnavailable(FulfillmentError):
    kind = "provider_unavailable"


class ProviderNotConfigured(ProviderUnavailable):
    pass


class ProviderRejected(FulfillmentError):
    kind = "provider_rejected"


class PersistenceError(FulfillmentError):
    kind = "persistence_error"


ERROR_KINDS = {
    cls.kind: cls
    for cls in (InvalidInput, NoOfferAvailable, ProviderUnavailable, ProviderRejected, PersistenceError)
}


def error_for_kind(kind: str | None, message: str, **kwargs) -> FulfillmentError:
    cls = ERROR_KINDS.get(str(kind or ""), ProviderUnavailable)
    return cls(message, **kwargs)
