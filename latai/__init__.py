"""
Latai - LLM latency benchmark.

Measures round-trip response latency of models served by OpenAI, Groq
and AWS Bedrock, and ranks them in a live terminal table.
"""

__version__ = "0.3.0"

from latai.evaluator import Evaluator
from latai.models import Evaluation, Model, Prompt, Response, Sample
from latai.orchestrator import LatencyFailed, LatencyUpdated, MeasurementOrchestrator
from latai.table import RankedTable, RowStatus

__all__ = [
    "Evaluation",
    "Evaluator",
    "LatencyFailed",
    "LatencyUpdated",
    "MeasurementOrchestrator",
    "Model",
    "Prompt",
    "RankedTable",
    "Response",
    "RowStatus",
    "Sample",
]
