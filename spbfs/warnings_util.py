"""Selection warnings, echoed in color on an interactive stderr."""

import sys
import warnings

_TTY_TEMPLATE = "\033[1;93mSPBFS WARNING:\033[0m \033[93m{}\033[0m"


class SelectionWarning(UserWarning):
    """Non-fatal condition encountered during feature selection."""


def warn(message: str, category=SelectionWarning, stacklevel: int = 2) -> None:
    """
    Issue ``message`` through the warnings machinery.

    The warning is attributed to the caller of ``warn``, so filters keyed on
    module apply there. When stderr is a terminal a highlighted copy is also
    written, since resample notices are easy to miss among progress lines.

    Parameters
    ----------
    message : str
        Text of the warning
    category : Warning
        Warning class (default: SelectionWarning)
    stacklevel : int
        Stack level relative to the caller of ``warn``
    """
    warnings.warn(message, category, stacklevel=stacklevel + 1)
    if sys.stderr.isatty():
        print(_TTY_TEMPLATE.format(message), file=sys.stderr)
