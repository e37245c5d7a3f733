from .errors import *
from .interpreter import *
from .script import *
from .stack import *

_version_str = '0.1'
_version = tuple(int(part) for part in _version_str.split('.'))

__all__ = sum((
    errors.__all__,
    interpreter.__all__,
    script.__all__,
    stack.__all__,
), ())
