"""Data models for the advice widget"""

from advice_widget.models.advice import AdviceFetchResult, AdvicePayload, AdviceSlipResponse
from advice_widget.models.timeline import RefreshAck, RenderEntry, ScheduleDecision

__all__ = [
    "AdvicePayload",
    "AdviceSlipResponse",
    "AdviceFetchResult",
    "RenderEntry",
    "ScheduleDecision",
    "RefreshAck",
]
