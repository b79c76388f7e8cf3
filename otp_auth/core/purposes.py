import enum

from otp_auth.core.exceptions import InvalidPurposeException


class OTPPurpose(str, enum.Enum):
    """What a code may be used for. Every quota and lookup is scoped by it."""

    SIGNUP = "signup"
    RESET = "reset"

    @classmethod
    def parse(cls, value) -> "OTPPurpose":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidPurposeException(str(value))
