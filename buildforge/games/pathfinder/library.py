"""
Pathfinder Feature Library

Hand-authored subset of the Pathfinder 2e SRD, enough to build a
1st-level character's attributes:
- Default attribute scores (all 10)
- Attribute boosts (+2) and flaws (-2)
- Ancestries with fixed boosts, free boosts and flaws
- Backgrounds with a restricted boost and a trained skill
- A rolled-attributes variant (4d6kh3 per attribute)

Feature ids follow "<kind>.<name>"; value names follow "attr.<abbr>".
"""

from ...library_schema import Feature, Library, all_of, any_of, meta
from ...library_schema.feature import add, choice, data, feature, ref, roll

ATTRIBUTES = ("str", "dex", "con", "int", "wis", "cha")
BASE_SCORE = 10
BOOST = 2


def create_pathfinder_library() -> Library:
    """Create the built-in Pathfinder library."""
    return Library(features=[
        *_define_roots(),
        *_define_attributes(),
        *_define_ancestries(),
        *_define_backgrounds(),
    ])


def _define_roots() -> list[Feature]:
    return [
        feature(
            "pathfinder", ["root"],
            data("level", 1),
            ref("attrs.default"),
            choice("ancestry", meta("ancestry"), default="ancestry.human"),
            choice("background", meta("background")),
        ),
        feature(
            "pathfinder.rolled", ["root", "variant"],
            data("level", 1),
            ref("attrs.rolled"),
            choice("ancestry", meta("ancestry"), default="ancestry.human"),
            choice("background", meta("background")),
        ),
    ]


def _define_attributes() -> list[Feature]:
    features = [
        feature("attrs.default", ["attrs"], *(data(f"attr.{a}", BASE_SCORE) for a in ATTRIBUTES)),
        feature("attrs.rolled", ["attrs", "variant"], *(roll(f"attr.{a}", "4d6kh3") for a in ATTRIBUTES)),
    ]
    for a in ATTRIBUTES:
        features.append(feature(f"boost.{a}", ["boost", f"attr.{a}"], add(f"attr.{a}", BOOST)))
    for a in ATTRIBUTES:
        features.append(feature(f"flaw.{a}", ["flaw", f"attr.{a}"], add(f"attr.{a}", -BOOST)))
    return features


def _free_boost(choice_id: str, *excluded: str):
    """A boost to any attribute not already boosted by the same source."""
    allowed = [f"attr.{a}" for a in ATTRIBUTES if a not in excluded]
    return choice(choice_id, all_of(meta("boost"), any_of(*allowed)))


def _define_ancestries() -> list[Feature]:
    return [
        feature(
            "ancestry.dwarf", ["ancestry", "humanoid"],
            data("ancestry.hp", 10),
            data("size", "medium"),
            data("speed", 20),
            data("darkvision", True),
            ref("boost.con"),
            ref("boost.wis"),
            _free_boost("free-attr", "con", "wis"),
            ref("flaw.cha"),
        ),
        feature(
            "ancestry.elf", ["ancestry", "humanoid"],
            data("ancestry.hp", 6),
            data("size", "medium"),
            data("speed", 30),
            data("darkvision", False),
            ref("boost.dex"),
            ref("boost.int"),
            _free_boost("free-attr", "dex", "int"),
            ref("flaw.con"),
        ),
        feature(
            "ancestry.human", ["ancestry", "humanoid"],
            data("ancestry.hp", 8),
            data("size", "medium"),
            data("speed", 25),
            data("darkvision", False),
            _free_boost("free-attr"),
            _free_boost("free-attr-2"),
        ),
    ]


def _define_backgrounds() -> list[Feature]:
    return [
        feature(
            "background.acolyte", ["background"],
            choice("background-attr", all_of(meta("boost"), any_of("attr.int", "attr.wis")),
                   default="boost.wis"),
            data("skill.trained", "religion"),
        ),
        feature(
            "background.farmhand", ["background"],
            choice("background-attr", all_of(meta("boost"), any_of("attr.con", "attr.wis")),
                   default="boost.con"),
            data("skill.trained", "athletics"),
        ),
    ]
