class GpaPlannerError(Exception):
    """Base class for errors raised at the input boundaries (CSV, share links)."""


class GradeScaleError(GpaPlannerError):
    pass


class PlanImportError(GpaPlannerError):
    pass


class ShareLinkError(GpaPlannerError):
    pass
