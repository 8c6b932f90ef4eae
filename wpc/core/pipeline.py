"""wpclone stage pipeline

A clone is a fixed list of stages run in order. Each stage returns a
``StageResult``; the pipeline decides whether to continue from the result
and the stage's declared policy.
"""
from typing import Callable, List, NamedTuple, Optional

from wpc.core.exc import WPCError
from wpc.core.logging import Log


class SiteError(Exception):
    """Custom Exception Occured when setting up site"""

    def __init__(self, message):
        self.message = message

    def __str__(self):
        return str(self.message)


class StageResult(NamedTuple):
    status: str
    message: str = ''
    detail: Optional[str] = None

    OK = 'ok'
    WARNING = 'warning'
    FATAL = 'fatal'

    @classmethod
    def ok(cls, message='', detail=None):
        return cls(cls.OK, message, detail)

    @classmethod
    def warning(cls, message, detail=None):
        return cls(cls.WARNING, message, detail)

    @classmethod
    def fatal(cls, message, detail=None):
        return cls(cls.FATAL, message, detail)

    @property
    def is_fatal(self):
        return self.status == self.FATAL


class Stage(NamedTuple):
    name: str
    func: Callable
    tolerated: bool = False


class PipelineReport(NamedTuple):
    """Outcome of a pipeline run"""
    results: List[tuple]
    failed_stage: Optional[str] = None

    @property
    def exit_code(self):
        return 1 if self.failed_stage else 0

    @property
    def warnings(self):
        return [(name, result) for name, result in self.results
                if result.status == StageResult.WARNING]


class ClonePipeline:
    """Run stages in order and stop at the first fatal result"""

    def __init__(self, controller, stages):
        self.controller = controller
        self.stages = stages

    def _run_stage(self, stage, request):
        try:
            result = stage.func(self.controller, request)
        except (WPCError, SiteError) as e:
            result = StageResult.fatal(str(e))
        if result is None:
            result = StageResult.ok()
        if result.is_fatal and stage.tolerated:
            result = StageResult.warning(result.message, result.detail)
        return result

    def run(self, request):
        results = []
        for stage in self.stages:
            Log.debug(self.controller, "Running stage {0}".format(stage.name))
            result = self._run_stage(stage, request)
            results.append((stage.name, result))
            if result.status == StageResult.WARNING:
                Log.warn(self.controller, result.message)
            elif result.is_fatal:
                Log.error(self.controller, result.message, exit=False)
                if result.detail:
                    Log.info(self.controller, result.detail)
                return PipelineReport(results, stage.name)
            elif result.message:
                Log.debug(self.controller, result.message)
        return PipelineReport(results)
