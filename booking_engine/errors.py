"""
Error taxonomy for the scheduling and booking engine.

Every failure a caller can observe derives from BookingError and carries
a machine-readable ``code``, a user-facing ``message`` (in the platform's
language), an HTTP-equivalent status and whether retrying with different
input can succeed.

Validation-phase errors are raised. PostCommitBookkeepingError is never
raised to callers of validate_and_book; it is collected as a warning on
the BookingOutcome instead.
"""

from typing import Optional


class BookingError(Exception):
    """Base class for every engine error."""

    code: str = "BOOKING_ERROR"
    default_message: str = "Erro ao processar o agendamento"
    http_status: int = 400
    retryable: bool = False

    def __init__(self, message: Optional[str] = None, **details: object) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Serialize for an API error payload."""
        payload: dict = {"error": self.message, "code": self.code}
        if self.details:
            payload["details"] = {k: str(v) for k, v in self.details.items()}
        return payload


class ConfigurationError(BookingError):
    """Store data (working hours) is malformed. The store must be reconfigured."""

    code = "CONFIGURATION_ERROR"
    default_message = "Configuração de horário da loja inválida"
    http_status = 500


class StoreNotFoundError(BookingError):
    code = "STORE_NOT_FOUND"
    default_message = "Loja não encontrada ou inativa"
    http_status = 404


class ServiceNotFoundError(BookingError):
    code = "SERVICE_NOT_FOUND"
    default_message = "Serviço não encontrado ou inativo"
    http_status = 404


class AppointmentNotFoundError(BookingError):
    code = "APPOINTMENT_NOT_FOUND"
    default_message = "Agendamento não encontrado"
    http_status = 404


class SlotUnavailableError(BookingError):
    """The requested interval conflicts with an active appointment."""

    code = "TIME_SLOT_UNAVAILABLE"
    default_message = "Horário não disponível"
    retryable = True


class OutsideWorkingHoursError(SlotUnavailableError):
    default_message = "Horário fora do expediente da loja"


class CrossesMidnightError(SlotUnavailableError):
    default_message = "O agendamento não pode ultrapassar a meia-noite"


class BookingWindowError(BookingError):
    """The requested date is in the past or outside the store's booking window."""

    code = "INVALID_DATE"
    default_message = "Data do agendamento deve ser no futuro"
    retryable = True

    def __init__(self, message: Optional[str] = None, code: Optional[str] = None,
                 **details: object) -> None:
        super().__init__(message, **details)
        if code:
            self.code = code


class CouponError(BookingError):
    """Base class for coupon rule violations."""

    code = "COUPON_INVALID"
    retryable = True


class InvalidCouponError(CouponError):
    code = "COUPON_INVALID"
    default_message = "Cupom inválido ou não aplicável a esta loja"


class CouponExpiredError(CouponError):
    code = "COUPON_EXPIRED"
    default_message = "Cupom fora do período de validade"


class CouponExhaustedError(CouponError):
    code = "COUPON_EXHAUSTED"
    default_message = "Cupom esgotado"


class CouponUserLimitError(CouponError):
    code = "COUPON_USER_LIMIT"
    default_message = "Limite de uso do cupom atingido para este usuário"


class CouponMinAmountError(CouponError):
    code = "COUPON_MIN_AMOUNT"
    default_message = "Valor mínimo do cupom não atingido"


class InvalidTransitionError(BookingError):
    """Raised when a status transition is not valid from the current status."""

    code = "INVALID_STATUS_TRANSITION"
    default_message = "Transição de status inválida"


class PostCommitBookkeepingError(BookingError):
    """A side effect failed after the appointment was durably persisted."""

    code = "POST_COMMIT_BOOKKEEPING"
    default_message = "Falha em processamento posterior ao agendamento"
    http_status = 500

    def __init__(self, stage: str, message: Optional[str] = None,
                 cause: Optional[BaseException] = None, **details: object) -> None:
        super().__init__(message, stage=stage, **details)
        self.stage = stage
        self.cause = cause
