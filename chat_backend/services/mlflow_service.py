"""
services/mlflow_service.py
--------------------------
MLflow experiment tracking for generation calls.

What this tracks:
  - Every generation call (chat reply or title) is logged as an MLflow run
    inside the "ai-chat-backend" experiment.
  - Parameters logged: model name, purpose, owner kind (user / guest)
  - Metrics logged: prompt and response length, latency in milliseconds

Tracking is off unless MLFLOW_TRACKING_URI is set. Message text is never
sent to MLflow, only sizes and timings.

View the MLflow UI:
  mlflow ui --port 5001
  Then open: http://localhost:5001
"""

from typing import Optional

from chat_backend.core.config import settings
from chat_backend.core.logging import get_logger

logger = get_logger(__name__)

# All runs are grouped under this experiment
EXPERIMENT_NAME = "ai-chat-backend"


def _get_mlflow():
    """
    Lazy import mlflow so the app still starts if mlflow isn't installed.
    Returns the mlflow module or None.
    """
    if not settings.MLFLOW_TRACKING_URI:
        return None
    try:
        import mlflow
        return mlflow
    except ImportError:
        logger.warning(
            "mlflow not installed, tracking disabled. Run: pip install '.[tracking]'"
        )
        return None


def setup_mlflow() -> None:
    """
    Called once at application startup.
    Creates the experiment if it doesn't exist.
    """
    mlflow = _get_mlflow()
    if mlflow is None:
        return

    try:
        mlflow.set_tracking_uri(settings.MLFLOW_TRACKING_URI)
        if mlflow.get_experiment_by_name(EXPERIMENT_NAME) is None:
            mlflow.create_experiment(EXPERIMENT_NAME)
            logger.info("MLflow experiment created", experiment=EXPERIMENT_NAME)
        mlflow.set_experiment(EXPERIMENT_NAME)
        logger.info("MLflow tracking initialised", uri=settings.MLFLOW_TRACKING_URI)
    except Exception as exc:
        logger.warning("MLflow setup failed (non-fatal)", error=str(exc))


def track_llm_call(
    prompt_chars: int,
    response: str,
    latency_ms: float,
    purpose: str,
    owner_kind: str,
    model: str,
) -> Optional[str]:
    """
    Log a single generation call as an MLflow run.

    Args:
        prompt_chars: Total characters sent across all turns.
        response:     The generated text (only its length is logged).
        latency_ms:   End-to-end latency in milliseconds.
        purpose:      "generate_reply" or "derive_title".
        owner_kind:   "user" or "guest".
        model:        Model name the call was sent to.

    Returns:
        The MLflow run_id string, or None if tracking is off or failed.
    """
    mlflow = _get_mlflow()
    if mlflow is None:
        return None

    try:
        mlflow.set_experiment(EXPERIMENT_NAME)

        with mlflow.start_run() as run:
            # ── Parameters ────────────────────────────────────────────────────
            mlflow.log_params({
                "model":       model,
                "purpose":     purpose,
                "owner_kind":  owner_kind,
                "environment": settings.APP_ENV,
            })

            # ── Metrics ───────────────────────────────────────────────────────
            mlflow.log_metrics({
                "latency_ms":      latency_ms,
                "prompt_chars":    float(prompt_chars),
                "response_length": float(len(response)),
            })

            mlflow.set_tags({"source": "api", "purpose": purpose})

            run_id = run.info.run_id
            logger.debug("MLflow run logged", run_id=run_id, latency_ms=latency_ms)
            return run_id

    except Exception as exc:
        # Never let tracking failures break the main request
        logger.warning("MLflow tracking failed (non-fatal)", error=str(exc))
        return None
