__path__ = __import__("pkgutil").extend_path(__path__, __name__)  # NOQA: F-821
__title__ = 'nautilus'
__license__ = 'MIT'
__version__ = "0.1.0"

from .tokens import *
from .naming import *
from .faults import *
from .registry import *
from .conversion import *
from .declarations import *
from .console import *
from .help import *
from .shell import *

VersionInfo = __import__("collections").namedtuple("VersionInfo", (
    "major",
    "minor",
    "micro",
    "releaselevel",
    "serial",
))

version_info = VersionInfo(0, 1, 0, "final", 0)

__all__ = (
    "__path__",
    "__title__",
    "__license__",
    "__version__",
    "version_info"
)

# Load the exposed API of each stage of the line pipeline
__all__ += tokens.__all__  # type: ignore[attr-defined]
__all__ += naming.__all__  # type: ignore[attr-defined]
__all__ += registry.__all__  # type: ignore[attr-defined]
__all__ += conversion.__all__  # type: ignore[attr-defined]
# Load the exposed API of the faults
__all__ += faults.__all__  # type: ignore[attr-defined]
# Load the exposed API of the shell surface
__all__ += declarations.__all__  # type: ignore[attr-defined]
__all__ += console.__all__  # type: ignore[attr-defined]
__all__ += help.__all__  # type: ignore[attr-defined]
__all__ += shell.__all__  # type: ignore[attr-defined]
