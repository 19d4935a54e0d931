from .run_models import RunReport, RunStartRequest, RunStartResponse

__all__ = ["RunReport", "RunStartRequest", "RunStartResponse"]
