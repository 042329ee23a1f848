from enum import Enum


class Opcode(str, Enum):
    """Defines the trace operation codes."""

    LOAD = "L"
    STORE = "S"
    BRANCH = "B"
    COMPUTE = "C"

    def __str__(self) -> str:
        return self.value
