from enum import Enum


class RequestState(Enum):
    UNSENT = "unsent"
    SENT = "sent"
