"""CHIP-8 machine constants."""

MEMORY_SIZE = 4096
PROGRAM_START = 0x200
MAX_ROM_SIZE = MEMORY_SIZE - PROGRAM_START

FONT_START = 0x000
FONT_GLYPH_SIZE = 5

SCREEN_WIDTH = 64
SCREEN_HEIGHT = 32

STACK_SIZE = 16
NUM_REGISTERS = 16
NUM_KEYS = 16

FLAG_REGISTER = 0xF
ADDRESS_MASK = 0xFFF
INSTRUCTION_SIZE = 2

# 16 glyphs (0-F), 5 rows each, 4 pixels wide in the high nibble
FONT_DATA = [
    0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
    0x20, 0x60, 0x20, 0x20, 0x70,  # 1
    0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
    0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
    0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
    0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
    0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
    0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
    0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
    0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
    0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
    0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
    0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
    0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
    0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
    0xF0, 0x80, 0xF0, 0x80, 0x80,  # F
]

__all__ = [
    "MEMORY_SIZE",
    "PROGRAM_START",
    "MAX_ROM_SIZE",
    "FONT_START",
    "FONT_GLYPH_SIZE",
    "SCREEN_WIDTH",
    "SCREEN_HEIGHT",
    "STACK_SIZE",
    "NUM_REGISTERS",
    "NUM_KEYS",
    "FLAG_REGISTER",
    "ADDRESS_MASK",
    "INSTRUCTION_SIZE",
    "FONT_DATA",
]
