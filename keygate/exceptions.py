"""Exceptions raised by keygate services and controllers."""


class AuthenticationError(RuntimeError):
    """The caller could not be identified."""


class MissingCredential(AuthenticationError):
    """No long-lived key or bearer token was provided."""


class UnknownKey(AuthenticationError):
    """The long-lived key does not exist in the credential store."""


class InvalidToken(AuthenticationError):
    """Raised when a passed token is malformed or otherwise invalid."""


class ExpiredToken(InvalidToken):
    """The bearer session has expired."""


class MissingIntegrityHeaders(AuthenticationError):
    """The request does not carry a timestamp and signature."""


class PolicyViolation(RuntimeError):
    """The caller is known, but is not allowed to proceed."""


class KeyBanned(PolicyViolation):
    """The long-lived key has been banned."""


class ProvinceMismatch(KeyBanned):
    """The key was used outside of its bound province, and is now banned."""


class CityLimitExceeded(KeyBanned):
    """The key was used from too many cities, and is now banned."""


class InvalidSignature(PolicyViolation):
    """The integrity signature does not match the request."""


class StaleTimestamp(InvalidSignature):
    """The integrity timestamp is outside of the allowed window."""


class RequestError(ValueError):
    """The request is malformed or cannot be routed."""


class MalformedRequest(RequestError):
    """The request body could not be parsed."""


class MissingParameter(RequestError):
    """A gateway target was called without a parameter it requires."""


class UnknownTarget(RequestError):
    """No gateway handler exists for the requested target."""


class UnknownParameter(RequestError):
    """A gateway target does not recognize the passed parameter."""


class InfrastructureError(IOError):
    """A backing store or upstream service failed."""


class StoreUnavailable(InfrastructureError):
    """The credential store could not be read or updated."""


class GeolocationFailed(InfrastructureError):
    """The caller's IP address could not be resolved to a location."""


class RoundDataUnavailable(InfrastructureError):
    """The remote catalog or round feed could not be retrieved."""


class PartialRecord(ValueError):
    """A catalog entry is missing fields, or has fields of the wrong type."""


class EncodingError(RuntimeError):
    """A payload could not be serialized, sealed or opened."""


class EncryptionFailed(EncodingError):
    """A payload could not be sealed."""


class DecryptionFailed(EncodingError):
    """An envelope is malformed, truncated or has been tampered with."""
