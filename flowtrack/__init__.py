"""flowtrack: fulfillment flow retrieval and daily stage charts."""

from .charts import ChartResult, ChartSeries, DailyCount
from .config import FlowtrackConfig, load_config
from .contracts import FlowRecord, OrderSnapshot, StageCompletion, parse_flow_record
from .errors import (
    DecodeError,
    FlowtrackError,
    IntegrityWarning,
    NotFoundError,
    RecordValidationError,
    TransportError,
    ValidationError,
)
from .families import FAMILIES, ONLINE, RIBBON, FamilyDescriptor, get_family
from .gateway import FlowGateway, FlowPage, FlowResult
from .query import FlowQuery
from .timeline import FlowTimeline, build_timeline
from .transports import get_transport

__version__ = "0.1.0"
__all__ = [
    "ChartResult",
    "ChartSeries",
    "DailyCount",
    "DecodeError",
    "FAMILIES",
    "FamilyDescriptor",
    "FlowGateway",
    "FlowPage",
    "FlowQuery",
    "FlowRecord",
    "FlowResult",
    "FlowTimeline",
    "FlowtrackConfig",
    "FlowtrackError",
    "IntegrityWarning",
    "NotFoundError",
    "ONLINE",
    "OrderSnapshot",
    "RIBBON",
    "RecordValidationError",
    "StageCompletion",
    "TransportError",
    "ValidationError",
    "build_timeline",
    "get_family",
    "get_transport",
    "load_config",
    "parse_flow_record",
]
