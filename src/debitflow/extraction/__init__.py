"""Extraction application services: model client, pipeline and gateway."""

from .gateway import OrderGateway, build_order_record
from .model_client import ModelCallOutcome, ModelExtractionClient
from .pipeline import ExtractionOutcome, ExtractionPipeline

__all__ = [
    "ExtractionOutcome",
    "ExtractionPipeline",
    "ModelCallOutcome",
    "ModelExtractionClient",
    "OrderGateway",
    "build_order_record",
]
