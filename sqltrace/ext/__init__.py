from enum import Enum
from enum import unique


class StrEnum(str, Enum):
    pass


@unique
class SpanTypes(StrEnum):
    SQL = "sql"
    TEST = "test"
