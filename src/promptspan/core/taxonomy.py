"""
Video-prompt span taxonomy.

Single source of truth for the role identifiers a span may carry. Roles are
either a bare parent (``camera``) or a parent-qualified attribute
(``camera.movement``). Every other module asks this one for membership,
parent lookup and specificity instead of keeping its own category list.

Usage:
    from promptspan.core.taxonomy import Category, parent_of, is_valid_category

    is_valid_category("camera.movement")   # True
    parent_of("camera.movement")           # "camera"
    resolve_legacy_id("fps")               # "technical.frameRate"
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

__all__ = [
    "TAXONOMY_VERSION",
    "TaxonomyGroup",
    "Category",
    "ParentCategory",
    "TAXONOMY",
    "VALID_CATEGORIES",
    "PARENT_CATEGORIES",
    "LEGACY_ID_MAP",
    "TAXONOMY_LABELS",
    "is_valid_category",
    "parent_of",
    "attribute_of",
    "role_depth",
    "is_attribute",
    "resolve_legacy_id",
    "resolve_role",
    "categories_in_group",
]

TAXONOMY_VERSION = "3.0.0"


class TaxonomyGroup(Enum):
    """Coarse grouping of parent categories."""
    ENTITY = "entity"
    SETTING = "setting"
    TECHNICAL = "technical"


class Category(str, Enum):
    """Closed set of valid span roles."""

    SHOT = "shot"
    SHOT_TYPE = "shot.type"

    SUBJECT = "subject"
    SUBJECT_IDENTITY = "subject.identity"
    SUBJECT_APPEARANCE = "subject.appearance"
    SUBJECT_WARDROBE = "subject.wardrobe"
    SUBJECT_EMOTION = "subject.emotion"

    ACTION = "action"
    ACTION_MOVEMENT = "action.movement"
    ACTION_STATE = "action.state"
    ACTION_GESTURE = "action.gesture"

    ENVIRONMENT = "environment"
    ENVIRONMENT_LOCATION = "environment.location"
    ENVIRONMENT_WEATHER = "environment.weather"
    ENVIRONMENT_CONTEXT = "environment.context"

    LIGHTING = "lighting"
    LIGHTING_SOURCE = "lighting.source"
    LIGHTING_QUALITY = "lighting.quality"
    LIGHTING_TIME_OF_DAY = "lighting.timeOfDay"
    LIGHTING_COLOR_TEMP = "lighting.colorTemp"

    CAMERA = "camera"
    CAMERA_MOVEMENT = "camera.movement"
    CAMERA_LENS = "camera.lens"
    CAMERA_ANGLE = "camera.angle"
    CAMERA_FOCUS = "camera.focus"

    STYLE = "style"
    STYLE_AESTHETIC = "style.aesthetic"
    STYLE_FILM_STOCK = "style.filmStock"
    STYLE_COLOR_GRADE = "style.colorGrade"

    TECHNICAL = "technical"
    TECHNICAL_ASPECT_RATIO = "technical.aspectRatio"
    TECHNICAL_FRAME_RATE = "technical.frameRate"
    TECHNICAL_RESOLUTION = "technical.resolution"
    TECHNICAL_DURATION = "technical.duration"

    AUDIO = "audio"
    AUDIO_SCORE = "audio.score"
    AUDIO_SOUND_EFFECT = "audio.soundEffect"
    AUDIO_AMBIENT = "audio.ambient"

    @property
    def parent(self) -> str:
        return parent_of(self.value)

    @property
    def attribute(self) -> Optional[str]:
        return attribute_of(self.value)


@dataclass(frozen=True)
class ParentCategory:
    """A top-level taxonomy entry and the attributes filed under it."""
    id: str
    label: str
    description: str
    group: TaxonomyGroup
    attributes: tuple[Category, ...] = field(default_factory=tuple)


TAXONOMY: dict[str, ParentCategory] = {
    "shot": ParentCategory(
        "shot", "Shot Type", "Framing and vantage of the camera",
        TaxonomyGroup.TECHNICAL, (Category.SHOT_TYPE,),
    ),
    "subject": ParentCategory(
        "subject", "Subject & Character", "The focal point of the shot",
        TaxonomyGroup.ENTITY,
        (
            Category.SUBJECT_IDENTITY,
            Category.SUBJECT_APPEARANCE,
            Category.SUBJECT_WARDROBE,
            Category.SUBJECT_EMOTION,
        ),
    ),
    "action": ParentCategory(
        "action", "Action & Motion", "What the subject is doing",
        TaxonomyGroup.ENTITY,
        (Category.ACTION_MOVEMENT, Category.ACTION_STATE, Category.ACTION_GESTURE),
    ),
    "environment": ParentCategory(
        "environment", "Environment", "Where the scene takes place",
        TaxonomyGroup.SETTING,
        (
            Category.ENVIRONMENT_LOCATION,
            Category.ENVIRONMENT_WEATHER,
            Category.ENVIRONMENT_CONTEXT,
        ),
    ),
    "lighting": ParentCategory(
        "lighting", "Lighting", "Illumination and atmosphere",
        TaxonomyGroup.SETTING,
        (
            Category.LIGHTING_SOURCE,
            Category.LIGHTING_QUALITY,
            Category.LIGHTING_TIME_OF_DAY,
            Category.LIGHTING_COLOR_TEMP,
        ),
    ),
    "camera": ParentCategory(
        "camera", "Camera", "Cinematography and framing",
        TaxonomyGroup.TECHNICAL,
        (
            Category.CAMERA_MOVEMENT,
            Category.CAMERA_LENS,
            Category.CAMERA_ANGLE,
            Category.CAMERA_FOCUS,
        ),
    ),
    "style": ParentCategory(
        "style", "Style & Aesthetic", "Visual treatment and medium",
        TaxonomyGroup.TECHNICAL,
        (
            Category.STYLE_AESTHETIC,
            Category.STYLE_FILM_STOCK,
            Category.STYLE_COLOR_GRADE,
        ),
    ),
    "technical": ParentCategory(
        "technical", "Technical Specs", "Video technical parameters",
        TaxonomyGroup.TECHNICAL,
        (
            Category.TECHNICAL_ASPECT_RATIO,
            Category.TECHNICAL_FRAME_RATE,
            Category.TECHNICAL_RESOLUTION,
            Category.TECHNICAL_DURATION,
        ),
    ),
    "audio": ParentCategory(
        "audio", "Audio", "Sound and music elements",
        TaxonomyGroup.TECHNICAL,
        (Category.AUDIO_SCORE, Category.AUDIO_SOUND_EFFECT, Category.AUDIO_AMBIENT),
    ),
}

VALID_CATEGORIES: frozenset[str] = frozenset(c.value for c in Category)
PARENT_CATEGORIES: frozenset[str] = frozenset(TAXONOMY)

# Flat and pre-namespace ids still emitted by older prompts and models.
LEGACY_ID_MAP: dict[str, str] = {
    # subject
    "identity": "subject.identity",
    "appearance": "subject.appearance",
    "wardrobe": "subject.wardrobe",
    "emotion": "subject.emotion",
    "subject.action": "action.movement",
    # environment
    "location": "environment.location",
    "weather": "environment.weather",
    "context": "environment.context",
    # lighting
    "lighting_source": "lighting.source",
    "lightingSource": "lighting.source",
    "lighting_quality": "lighting.quality",
    "lightingQuality": "lighting.quality",
    "time_of_day": "lighting.timeOfDay",
    "timeOfDay": "lighting.timeOfDay",
    "timeofday": "lighting.timeOfDay",
    "timeday": "lighting.timeOfDay",
    "colorTemp": "lighting.colorTemp",
    "color_temp": "lighting.colorTemp",
    # camera / shot
    "framing": "shot.type",
    "camera.framing": "shot.type",
    "camera_move": "camera.movement",
    "cameraMove": "camera.movement",
    "movement": "camera.movement",
    "lens": "camera.lens",
    "angle": "camera.angle",
    "focus": "camera.focus",
    "aperture": "camera.focus",
    "depth_of_field": "camera.focus",
    # style
    "aesthetic": "style.aesthetic",
    "film_stock": "style.filmStock",
    "filmStock": "style.filmStock",
    "colorGrade": "style.colorGrade",
    "color_grade": "style.colorGrade",
    # technical
    "aspect_ratio": "technical.aspectRatio",
    "aspectRatio": "technical.aspectRatio",
    "frame_rate": "technical.frameRate",
    "frameRate": "technical.frameRate",
    "fps": "technical.frameRate",
    "resolution": "technical.resolution",
    "specs": "technical.resolution",
    "duration": "technical.duration",
    # audio
    "score": "audio.score",
    "sound_effect": "audio.soundEffect",
    "soundEffect": "audio.soundEffect",
    "sfx": "audio.soundEffect",
    "ambient": "audio.ambient",
    "ambience": "audio.ambient",
}

# Lower-cased display names of categories and attributes. A span whose whole
# text is one of these is a section label, not prompt content.
TAXONOMY_LABELS: frozenset[str] = frozenset({
    "shot", "shot type", "shot size", "framing",
    "subject", "subjects", "character", "characters", "subject & character",
    "identity", "appearance", "wardrobe", "emotion",
    "action", "actions", "action & motion", "movement",
    "state", "gesture",
    "environment", "setting", "location", "weather", "context",
    "lighting", "time of day", "color temperature", "colour temperature",
    "camera", "camera movement", "camera angle", "lens", "angle", "focus",
    "style", "style & aesthetic", "aesthetic", "film stock", "color grade",
    "colour grade", "color grading",
    "technical", "technical specs", "specs", "aspect ratio", "frame rate",
    "fps", "resolution", "duration",
    "audio", "score", "sound effects", "sfx", "ambient",
    "composition", "details", "description", "prompt", "notes",
})


def is_valid_category(role: object) -> bool:
    """True if *role* is a member of the current taxonomy."""
    return isinstance(role, str) and role in VALID_CATEGORIES


def parent_of(role: str) -> str:
    """Return the parent category of *role* (``camera.lens`` -> ``camera``)."""
    if not role:
        return ""
    return role.split(".", 1)[0]


def attribute_of(role: str) -> Optional[str]:
    """Return the attribute part of *role*, or None for a bare parent."""
    if not role or "." not in role:
        return None
    return role.split(".", 1)[1]


def role_depth(role: str) -> int:
    """Specificity of a role: 1 for a parent, 2 for an attribute."""
    if not role:
        return 0
    return len(role.split("."))


def is_attribute(role: str) -> bool:
    return role_depth(role) > 1


def resolve_legacy_id(role: str) -> str:
    """Map a flat/legacy id onto its namespaced equivalent."""
    return LEGACY_ID_MAP.get(role, role)


def resolve_role(role: object) -> Optional[str]:
    """Normalise an incoming role to a taxonomy id.

    Valid ids pass through untouched; otherwise the legacy map is tried,
    first on the raw string and then case-insensitively. Returns None when
    nothing matches.
    """
    if not isinstance(role, str):
        return None
    candidate = role.strip()
    if candidate in VALID_CATEGORIES:
        return candidate
    mapped = resolve_legacy_id(candidate)
    if mapped in VALID_CATEGORIES:
        return mapped
    lowered = candidate.lower()
    for valid in VALID_CATEGORIES:
        if valid.lower() == lowered:
            return valid
    for legacy, target in LEGACY_ID_MAP.items():
        if legacy.lower() == lowered:
            return target
    return None


def categories_in_group(group: TaxonomyGroup) -> list[ParentCategory]:
    return [p for p in TAXONOMY.values() if p.group is group]
