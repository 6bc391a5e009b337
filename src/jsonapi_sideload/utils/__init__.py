from .typing import assert_not_none  # noqa
