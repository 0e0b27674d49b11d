from .flow import CHECK_AUTODISCOVER, CHECK_INCOMING, CHECK_OUTGOING, FlowMode, SetupData
from .server import (
    AccountServerController,
    ExchangeServerController,
    IncomingServerController,
    OutgoingServerController,
    PipelineOutcome,
)

__all__ = [
    "CHECK_AUTODISCOVER",
    "CHECK_INCOMING",
    "CHECK_OUTGOING",
    "FlowMode",
    "SetupData",
    "AccountServerController",
    "ExchangeServerController",
    "IncomingServerController",
    "OutgoingServerController",
    "PipelineOutcome",
]
