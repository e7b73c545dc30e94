import enum
from dataclasses import dataclass

from fpnew_tb.errors import InvalidOperation
from fpnew_tb.models.formats import FormatDescriptor, FP16, FP32


class Operation(enum.Enum):
    SDOTP = "SDOTP"
    VSUM = "VSUM"
    EXVSUM = "EXVSUM"
    FMADD = "FMADD"

    @classmethod
    def parse(cls, name: str) -> "Operation":
        try:
            return cls(name)
        except ValueError:
            raise InvalidOperation(f"Operation not supported: {name!r}") from None

    @property
    def spec(self) -> "OperationSpec":
        return OPERATION_SPECS[self]


@dataclass(frozen=True)
class OperandFormats:
    src: FormatDescriptor
    src2: FormatDescriptor
    dst: FormatDescriptor


@dataclass(frozen=True)
class RoleFormats:
    a: FormatDescriptor
    b: FormatDescriptor
    c: FormatDescriptor
    d: FormatDescriptor
    e: FormatDescriptor


@dataclass(frozen=True)
class OperationSpec:
    tag: str                    # 5-character record tag
    defaults: OperandFormats

    def roles(self, op: Operation, fmts: OperandFormats) -> RoleFormats:
        return RoleFormats(
            a=fmts.src2 if op is Operation.FMADD else fmts.src,
            b=fmts.src2,
            c=fmts.src,
            d=fmts.src if op is Operation.VSUM else fmts.src2,
            e=fmts.dst,
        )


OPERATION_SPECS = {
    Operation.SDOTP:  OperationSpec("SDOTP", OperandFormats(FP16, FP16, FP32)),
    Operation.VSUM:   OperationSpec("VSUM_", OperandFormats(FP16, FP16, FP16)),
    Operation.EXVSUM: OperationSpec("EXVSU", OperandFormats(FP16, FP16, FP32)),
    Operation.FMADD:  OperationSpec("FMADD", OperandFormats(FP32, FP32, FP32)),
}


def role_formats(op: Operation, fmts: OperandFormats) -> RoleFormats:
    return op.spec.roles(op, fmts)
