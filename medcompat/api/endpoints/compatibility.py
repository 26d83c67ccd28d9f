import structlog
from typing import List
from fastapi import APIRouter
from prometheus_client import Counter

from medcompat.schemas.compatibility import BatchEvaluationRequest, CompatibilityResult, EvaluationRequest
from medcompat.services.compatibility_engine import default_engine

router = APIRouter()
logger = structlog.get_logger()

EVALUATIONS = Counter(
    "medcompat_evaluations_total",
    "Compatibility evaluations served, by resulting status",
    ["status"],
)


# InvalidInputError propagates to the app-level handler in main.py (422 INVALID_INPUT)
@router.post("/compatibility/evaluate", response_model=CompatibilityResult)
async def evaluate_compatibility(payload: EvaluationRequest):
    logger.info("evaluation_request_received", medicine=payload.medicine_name)

    result = default_engine.evaluate(payload.medicine_name, payload.patient)

    EVALUATIONS.labels(status=result.status.value).inc()
    return result


@router.post("/compatibility/batch", response_model=List[CompatibilityResult])
async def evaluate_compatibility_batch(payload: BatchEvaluationRequest):
    """
    Scores every prescribed medicine against one patient; results keep request order.
    """
    logger.info("batch_evaluation_request_received", count=len(payload.medicine_names))

    results = default_engine.evaluate_many(payload.medicine_names, payload.patient)

    for result in results:
        EVALUATIONS.labels(status=result.status.value).inc()
    return results
