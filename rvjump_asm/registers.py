"""
RISC-V register names.

Integer registers accept numeric names (x0-x31), ABI names (zero, ra, sp, ...)
and the fp alias. Floating-point registers accept f0-f31 and their ABI names
(ft0, fs0, fa0, ...).
"""

REG_ABI_NAMES = (
    "zero", "ra", "sp", "gp", "tp", "t0", "t1", "t2",
    "s0", "s1", "a0", "a1", "a2", "a3", "a4", "a5",
    "a6", "a7", "s2", "s3", "s4", "s5", "s6", "s7",
    "s8", "s9", "s10", "s11", "t3", "t4", "t5", "t6",
)

REGISTER_MAP = {f"x{i}": i for i in range(32)}
REGISTER_MAP.update({name: num for num, name in enumerate(REG_ABI_NAMES)})
REGISTER_MAP["fp"] = 8

FP_REG_ABI_NAMES = (
    "ft0", "ft1", "ft2", "ft3", "ft4", "ft5", "ft6", "ft7",
    "fs0", "fs1", "fa0", "fa1", "fa2", "fa3", "fa4", "fa5",
    "fa6", "fa7", "fs2", "fs3", "fs4", "fs5", "fs6", "fs7",
    "fs8", "fs9", "fs10", "fs11", "ft8", "ft9", "ft10", "ft11",
)

FP_REGISTER_MAP = {f"f{i}": i for i in range(32)}
FP_REGISTER_MAP.update({name: num for num, name in enumerate(FP_REG_ABI_NAMES)})


def parse_register(name: str) -> int:
    """
    Parse a register name and return its number.

    Raises:
        ValueError: If the register name is invalid
    """
    name_lower = name.lower().strip()
    if name_lower in REGISTER_MAP:
        return REGISTER_MAP[name_lower]
    raise ValueError(f"Invalid register name: {name}")


def is_valid_register(name: str) -> bool:
    """Check if a string is a valid register name."""
    return name.lower().strip() in REGISTER_MAP


def get_register_name(num: int, use_abi: bool = True) -> str:
    """Get the ABI (or x-prefixed) name for a register number."""
    if not 0 <= num <= 31:
        raise ValueError(f"Invalid register number: {num}")
    if use_abi:
        return REG_ABI_NAMES[num]
    return f"x{num}"


def parse_fp_register(name: str) -> int:
    """
    Parse a floating-point register name and return its number.

    Raises:
        ValueError: If the name is not a floating-point register
    """
    name_lower = name.lower().strip()
    if name_lower in FP_REGISTER_MAP:
        return FP_REGISTER_MAP[name_lower]
    raise ValueError(f"Invalid floating-point register name: {name}")
