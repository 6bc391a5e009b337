from .jsonpointer import JSONPointer  # noqa
from .formatting import english_enumerate, split_comma_list  # noqa
