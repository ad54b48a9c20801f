# Namespace for pipeline steps
from .validate_request import ValidateRequest  # noqa: F401
from .hold_credits import HoldCredits  # noqa: F401
from .run_extraction import RunExtraction  # noqa: F401
from .settle_credits import SettleCredits  # noqa: F401
