from .component import ConnectorComponent
from .sink import RECORD_SCHEMA, ArrowSink, ParquetSink, RecordSink
from .source import CSVSource

__all__ = [
    "RECORD_SCHEMA",
    "ArrowSink",
    "CSVSource",
    "ConnectorComponent",
    "ParquetSink",
    "RecordSink",
]
