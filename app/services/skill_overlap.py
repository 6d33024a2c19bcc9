"""
Skill overlap helpers
Skill identity is case-insensitive; display casing is preserved
"""

from typing import Iterable, List


def normalize_skill(skill: str) -> str:
    return skill.strip().lower()


def intersect(wanted: Iterable[str], offered: Iterable[str]) -> List[str]:
    """
    Skills from `wanted` that also appear in `offered`, compared case-insensitively.
    The result keeps the casing and order of the wanted side, without duplicates.

    Directional: intersect(a.skills_wanted, b.skills_offered) answers
    "what can b teach a", and is computed separately from the inverse.
    """
    offered_keys = {normalize_skill(skill) for skill in offered if skill and skill.strip()}
    matches: List[str] = []
    seen = set()
    for skill in wanted:
        if not skill or not skill.strip():
            continue
        key = normalize_skill(skill)
        if key in offered_keys and key not in seen:
            matches.append(skill)
            seen.add(key)
    return matches


def dedupe_skills(skills: Iterable[str]) -> List[str]:
    """Trim skills and drop case-insensitive duplicates, keeping the first spelling"""
    cleaned: List[str] = []
    seen = set()
    for skill in skills:
        if not skill:
            continue
        trimmed = skill.strip()
        key = trimmed.lower()
        if trimmed and key not in seen:
            cleaned.append(trimmed)
            seen.add(key)
    return cleaned
