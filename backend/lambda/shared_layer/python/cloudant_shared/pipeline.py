"""cloudant_shared.pipeline — Fail-fast stage runner shared by the actions.

An action is a list of stages (decode → authenticate → call). Each stage reads
the invocation context dict and returns a value that is stored under the
stage's name. The first failure stops the run; ``execute`` then maps the
outcome to the single response envelope.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .errors import PipelineError
from .http_utils import _error, _success
from .serialization import _now_z

logger = logging.getLogger(__name__)

__all__ = ["Stage", "StageFailure", "execute", "run_stages"]


@dataclass(frozen=True)
class Stage:
    name: str
    run: Callable[[Dict[str, Any]], Any]


@dataclass(frozen=True)
class StageFailure:
    stage: str
    error_code: str
    message: str


def _emit_structured_observability(
    *,
    component: str,
    stage: str,
    latency_ms: int,
    error_code: Optional[str] = None,
) -> None:
    payload: Dict[str, Any] = {
        "timestamp": _now_z(),
        "component": component,
        "event": f"stage_{stage}",
        "latency_ms": int(max(0, latency_ms)),
        "error_code": str(error_code or ""),
    }
    logger.info("[OBSERVABILITY] %s", json.dumps(payload, sort_keys=True))


def run_stages(
    component: str,
    stages: Sequence[Stage],
    ctx: Dict[str, Any],
) -> Tuple[Optional[Dict[str, Any]], Optional[StageFailure]]:
    """Run stages in order.

    Returns (ctx, None) when every stage succeeded or (None, failure) for the
    first stage that raised. Later stages are never started after a failure.
    """
    for stage in stages:
        started = time.perf_counter()
        try:
            ctx[stage.name] = stage.run(ctx)
        except PipelineError as exc:
            failure = StageFailure(stage.name, exc.error_code, exc.message)
        except Exception:
            logger.exception("%s: unexpected error in stage %s", component, stage.name)
            failure = StageFailure(
                stage.name, "unexpected_error", f"Unexpected failure during {stage.name}"
            )
        else:
            _emit_structured_observability(
                component=component,
                stage=stage.name,
                latency_ms=int((time.perf_counter() - started) * 1000),
            )
            continue

        _emit_structured_observability(
            component=component,
            stage=stage.name,
            latency_ms=int((time.perf_counter() - started) * 1000),
            error_code=failure.error_code,
        )
        logger.warning("%s: stage %s failed: %s", component, stage.name, failure.message)
        return None, failure
    return ctx, None


def execute(
    component: str,
    stages: List[Stage],
    ctx: Dict[str, Any],
    *,
    result_stage: str,
    result_key: str,
    success_msg: str,
) -> Dict[str, Any]:
    """Run the stages and build the response envelope for either outcome."""
    done, failure = run_stages(component, stages, ctx)
    if failure is not None:
        return _error(failure.message)
    return _success(success_msg, result_key, done[result_stage].to_dict())
