from enum import Enum
from http import HTTPStatus


class StatusClass(Enum):
    INFORMATIONAL = 1
    SUCCESS = 2
    REDIRECTION = 3
    CLIENT_ERROR = 4
    SERVER_ERROR = 5
    UNKNOWN = 0

    @classmethod
    def of(cls, code: int) -> "StatusClass":
        """Classify by numeric range, so unregistered codes still get a class."""
        if 100 <= code < 600:
            return cls(code // 100)
        return cls.UNKNOWN


class ResponseStatus(Enum):
    UNKNOWN = -1

    # 1xx
    CONTINUE = 100
    SWITCHING_PROTOCOLS = 101
    PROCESSING = 102
    EARLY_HINTS = 103

    # 2xx
    OK = 200
    CREATED = 201
    ACCEPTED = 202
    NON_AUTHORITATIVE_INFORMATION = 203
    NO_CONTENT = 204
    RESET_CONTENT = 205
    PARTIAL_CONTENT = 206
    MULTI_STATUS = 207
    ALREADY_REPORTED = 208
    IM_USED = 226

    # 3xx
    MULTIPLE_CHOICES = 300
    MOVED_PERMANENTLY = 301
    FOUND = 302
    SEE_OTHER = 303
    NOT_MODIFIED = 304
    USE_PROXY = 305
    TEMPORARY_REDIRECT = 307
    PERMANENT_REDIRECT = 308

    # 4xx
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    PAYMENT_REQUIRED = 402
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    NOT_ACCEPTABLE = 406
    PROXY_AUTHENTICATION_REQUIRED = 407
    REQUEST_TIMEOUT = 408
    CONFLICT = 409
    GONE = 410
    LENGTH_REQUIRED = 411
    PRECONDITION_FAILED = 412
    PAYLOAD_TOO_LARGE = 413
    URI_TOO_LONG = 414
    UNSUPPORTED_MEDIA_TYPE = 415
    RANGE_NOT_SATISFIABLE = 416
    EXPECTATION_FAILED = 417
    IM_A_TEAPOT = 418
    MISDIRECTED_REQUEST = 421
    UNPROCESSABLE_ENTITY = 422
    LOCKED = 423
    FAILED_DEPENDENCY = 424
    TOO_EARLY = 425
    UPGRADE_REQUIRED = 426
    PRECONDITION_REQUIRED = 428
    TOO_MANY_REQUESTS = 429
    REQUEST_HEADER_FIELDS_TOO_LARGE = 431
    UNAVAILABLE_FOR_LEGAL_REASONS = 451

    # 5xx
    INTERNAL_SERVER_ERROR = 500
    NOT_IMPLEMENTED = 501
    BAD_GATEWAY = 502
    SERVICE_UNAVAILABLE = 503
    GATEWAY_TIMEOUT = 504
    HTTP_VERSION_NOT_SUPPORTED = 505
    VARIANT_ALSO_NEGOTIATES = 506
    INSUFFICIENT_STORAGE = 507
    LOOP_DETECTED = 508
    NOT_EXTENDED = 510
    NETWORK_AUTHENTICATION_REQUIRED = 511

    @classmethod
    def by_code(cls, code: int) -> "ResponseStatus":
        return _BY_CODE.get(code, cls.UNKNOWN)

    @property
    def code(self) -> int:
        return self.value

    @property
    def reason(self) -> str:
        try:
            return HTTPStatus(self.value).phrase
        except ValueError:
            return self.name.replace("_", " ").title()

    @property
    def status_class(self) -> StatusClass:
        return StatusClass.of(self.value)

    @property
    def is_success(self) -> bool:
        return self.status_class is StatusClass.SUCCESS

    @property
    def is_redirect(self) -> bool:
        return self.status_class is StatusClass.REDIRECTION

    @property
    def is_error(self) -> bool:
        return self.status_class in (StatusClass.CLIENT_ERROR, StatusClass.SERVER_ERROR)


_BY_CODE: dict[int, ResponseStatus] = {
    status.value: status for status in ResponseStatus if status is not ResponseStatus.UNKNOWN
}
