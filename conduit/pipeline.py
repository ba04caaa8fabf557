"""Fetch -> transform -> upload -> status pipeline for Conduit."""

from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

import requests
from pydantic import BaseModel, Field

from conduit.errors import ConduitError, ValidationError
from conduit.fetch import Fetcher
from conduit.finicity_client import FinicityClient
from conduit.logger import get_logger
from conduit.models.config import RuntimeConfig
from conduit.ocrolus_client import OcrolusClient
from conduit.status import report_book_status
from conduit.store import DataTree
from conduit.transform import Transformer
from conduit.upload import upload_tree

logger = get_logger("conduit.pipeline")

STAGES = ("fetch", "transform", "upload", "status")


class StageResult(BaseModel):
    """Outcome of one stage: counts on success, error kind and message on failure."""

    stage: str
    ok: bool
    counts: Dict[str, Any] = Field(default_factory=dict)
    error: Optional[str] = None
    error_kind: Optional[str] = None

    @classmethod
    def success(cls, stage: str, counts: Dict[str, Any]) -> "StageResult":
        return cls(stage=stage, ok=True, counts=counts)

    @classmethod
    def failure(cls, stage: str, error: ConduitError) -> "StageResult":
        return cls(stage=stage, ok=False, error=str(error), error_kind=error.kind)


class PipelineResult(BaseModel):
    """Results of the stages that ran, in order."""

    stages: List[StageResult] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return bool(self.stages) and all(s.ok for s in self.stages)

    @property
    def failed(self) -> Optional[StageResult]:
        return next((s for s in self.stages if not s.ok), None)

    def get(self, stage: str) -> Optional[StageResult]:
        return next((s for s in self.stages if s.stage == stage), None)


def run_stage(stage: str, func: Callable[[], Dict[str, Any]]) -> StageResult:
    """Run one stage, turning a ConduitError or file system error into a failed result."""
    try:
        counts = func()
    except ConduitError as e:
        logger.error(f"Stage '{stage}' failed: [{e.kind}] {e}")
        return StageResult.failure(stage, e)
    except OSError as e:
        path = str(e.filename) if e.filename else None
        message = f"File system error: {e.strerror or e}"
        if path:
            message += f": {path}"
        error = ValidationError(message, identifier=path)
        logger.error(f"Stage '{stage}' failed: [{error.kind}] {error}")
        return StageResult.failure(stage, error)
    return StageResult.success(stage, counts)


class Pipeline:
    """Runs the stages in order; each must succeed before the next starts."""

    def __init__(
        self,
        config: RuntimeConfig,
        session: Optional[requests.Session] = None,
        finicity_client: Optional[FinicityClient] = None,
        ocrolus_client: Optional[OcrolusClient] = None,
        upload_root: Optional[Path] = None,
    ):
        self.config = config
        self.session = session
        self.finicity_client = finicity_client
        self.ocrolus_client = ocrolus_client
        self.upload_root = upload_root

    @property
    def original_tree(self) -> DataTree:
        return DataTree(self.config.output_dir)

    @property
    def transformed_tree(self) -> DataTree:
        return DataTree(self.config.transformed_dir)

    def _ocrolus(self) -> OcrolusClient:
        if self.ocrolus_client is None:
            self.ocrolus_client = OcrolusClient.from_config(self.config, session=self.session)
        return self.ocrolus_client

    def fetch(self) -> Dict[str, Any]:
        self.config.require("finicity_partner_id", "finicity_partner_secret", "finicity_app_key", "finicity_customer_id")
        if self.finicity_client is None:
            self.finicity_client = FinicityClient.from_config(self.config, session=self.session)
        fetcher = Fetcher.from_config(self.finicity_client, self.config, tree=self.original_tree)
        return fetcher.fetch_all().model_dump()

    def transform(self) -> Dict[str, Any]:
        summary = Transformer(self.original_tree, self.transformed_tree, self.config.transform).run()
        return {**summary.model_dump(), "files": summary.files}

    def upload(self) -> Dict[str, Any]:
        self.config.require("ocrolus_client_id", "ocrolus_client_secret", "ocrolus_book_pk")
        tree = DataTree(self.upload_root) if self.upload_root else self.transformed_tree
        result = upload_tree(self._ocrolus(), self.config.ocrolus_book_pk, tree)
        return {"status": result.status, "message": result.message, "response": result.response}

    def status(self) -> Dict[str, Any]:
        self.config.require("ocrolus_client_id", "ocrolus_client_secret", "ocrolus_book_pk")
        report = report_book_status(self._ocrolus(), self.config.ocrolus_book_pk)
        return report.counts()

    def run(self, stages: Iterable[str] = STAGES) -> PipelineResult:
        result = PipelineResult()
        for stage in stages:
            if stage not in STAGES:
                raise ValueError(f"Unknown stage: {stage}")
            logger.info(f"=== Stage: {stage} ===")
            stage_result = run_stage(stage, getattr(self, stage))
            result.stages.append(stage_result)
            if not stage_result.ok:
                break
        log_pipeline_result(result)
        return result


def log_pipeline_result(result: PipelineResult) -> None:
    for stage in result.stages:
        if stage.ok:
            counts = ", ".join(f"{k}={v}" for k, v in stage.counts.items() if not isinstance(v, (dict, list)))
            logger.info(f"  {stage.stage}: ok ({counts})")
        else:
            logger.error(f"  {stage.stage}: {stage.error_kind}")

    if result.ok:
        status = result.get("status")
        if status and status.counts.get("rejected"):
            logger.warning(f"Pipeline completed with {status.counts['rejected']} rejected document(s)")
        else:
            logger.info("Pipeline completed successfully!")
    else:
        logger.error("Pipeline aborted")


def run_pipeline(config: RuntimeConfig, stages: Iterable[str] = STAGES) -> PipelineResult:
    """Run the configured stages with fresh API clients."""
    return Pipeline(config).run(stages)
