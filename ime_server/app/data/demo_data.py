"""Small bundled dictionary used to seed empty databases."""

from __future__ import annotations

from typing import Iterator, Tuple

CharacterRow = Tuple[str, str, str, int, str, int]

# (character, zhuyin, pinyin, tone, definition, freq)
DEMO_CHARACTERS: Tuple[CharacterRow, ...] = (
    ("我", "ㄨㄛ", "wo", 3, "I, me", 1000),
    ("握", "ㄨㄛ", "wo", 4, "to hold, to grasp", 120),
    ("卧", "ㄨㄛ", "wo", 4, "to lie down", 80),
    ("窝", "ㄨㄛ", "wo", 1, "nest, den", 60),
    ("沃", "ㄨㄛ", "wo", 4, "fertile, to irrigate", 30),
    ("你", "ㄋㄧ", "ni", 3, "you", 900),
    ("泥", "ㄋㄧ", "ni", 2, "mud, clay", 70),
    ("好", "ㄏㄠ", "hao", 3, "good, well", 850),
    ("号", "ㄏㄠ", "hao", 4, "number, mark", 300),
    ("的", "ㄉㄜ", "de", 5, "possessive particle", 2000),
    ("是", "ㄕ", "shi", 4, "to be, yes", 1500),
    ("十", "ㄕ", "shi", 2, "ten", 400),
    ("国", "ㄍㄨㄛ", "guo", 2, "country, nation", 700),
    ("果", "ㄍㄨㄛ", "guo", 3, "fruit, result", 250),
    ("中", "ㄓㄨㄥ", "zhong", 1, "middle, center", 800),
    ("人", "ㄖㄣ", "ren", 2, "person, people", 950),
    ("大", "ㄉㄚ", "da", 4, "big, large", 880),
    ("小", "ㄒㄧㄠ", "xiao", 3, "small, little", 600),
    ("水", "ㄕㄨㄟ", "shui", 3, "water", 500),
    ("火", "ㄏㄨㄛ", "huo", 3, "fire", 350),
)


def iter_demo_character_rows() -> Iterator[CharacterRow]:
    yield from DEMO_CHARACTERS


__all__ = ["CharacterRow", "DEMO_CHARACTERS", "iter_demo_character_rows"]
