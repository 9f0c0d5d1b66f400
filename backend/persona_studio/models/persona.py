"""Persona and creator-form data models."""
import random
from enum import Enum
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class Persona(BaseModel):
    """Synthetic influencer identity derived from a reference image.

    Every field is required. A model response that omits one (hashtags
    included) must fail validation rather than fall back to a default.
    """

    model_config = ConfigDict(frozen=True)

    nickname: NonEmptyStr
    age: NonEmptyStr  # e.g. "20대 중반"
    occupation: NonEmptyStr
    personality: NonEmptyStr
    lifestyle: NonEmptyStr
    vibe: NonEmptyStr
    description: NonEmptyStr
    hashtags: list[NonEmptyStr] = Field(..., min_length=1)


class Gender(str, Enum):
    man = "Man"
    woman = "Woman"
    non_binary = "Non-binary"


class Build(str, Enum):
    slender = "Slender"
    athletic = "Athletic"
    curvy = "Curvy"
    muscular = "Muscular"
    petite = "Petite"
    average = "Average"
    plus_size = "Plus-size"


class Ethnicity(str, Enum):
    korean = "Korean"
    japanese = "Japanese"
    chinese = "Chinese"
    american = "American"
    french = "French"
    brazilian = "Brazilian"
    indian = "Indian"
    russian = "Russian"
    mixed = "Mixed"


class EyeColor(str, Enum):
    dark_brown = "Dark Brown"
    brown = "Brown"
    blue = "Blue"
    green = "Green"
    hazel = "Hazel"
    grey = "Grey"
    amber = "Amber"


class HairStyle(str, Enum):
    long_straight = "Long Straight"
    long_wavy = "Long Wavy"
    bob_cut = "Bob Cut"
    pixie = "Pixie"
    ponytail = "Ponytail"
    bun = "Bun"
    braids = "Braids"
    short_textured = "Short Textured"


class HairColor(str, Enum):
    black = "Black"
    dark_brown = "Dark Brown"
    brown = "Brown"
    blonde = "Blonde"
    red = "Red"
    auburn = "Auburn"
    silver = "Silver"
    pastel_pink = "Pastel Pink"


class FashionStyle(str, Enum):
    minimalist_chic = "Minimalist Chic"
    streetwear = "Streetwear"
    luxury = "Luxury/High-End"
    vintage = "Vintage"
    casual = "Casual"
    sporty = "Sporty"
    bohemian = "Bohemian"
    business = "Business"


class Vibe(str, Enum):
    confident = "Confident"
    friendly = "Friendly"
    mysterious = "Mysterious"
    energetic = "Energetic"
    elegant = "Elegant"
    cute = "Cute"
    edgy = "Edgy"


class CreatorAttributes(BaseModel):
    """Input of the 'Maker' form used to synthesize a reference portrait."""

    gender: Gender = Gender.woman
    age: int = Field(25, ge=18, le=65)
    height: int = Field(165, ge=140, le=210)  # cm
    weight: int = Field(50, ge=40, le=150)  # kg
    build: Build = Build.slender
    ethnicity: Ethnicity = Ethnicity.korean
    eye_color: EyeColor = EyeColor.dark_brown
    hair_style: HairStyle = HairStyle.long_straight
    hair_color: HairColor = HairColor.black
    fashion_style: FashionStyle = FashionStyle.minimalist_chic
    vibe: Vibe = Vibe.confident

    @classmethod
    def randomize(cls, rng: Optional[random.Random] = None) -> "CreatorAttributes":
        """Draw a random attribute set.

        Gender is drawn from Woman/Man only and the numeric ranges are
        narrower than the allowed bounds, so random models stay plausible.
        """
        rng = rng or random.Random()
        return cls(
            gender=rng.choice([Gender.woman, Gender.man]),
            age=rng.randint(18, 40),
            height=rng.randint(155, 185),
            weight=rng.randint(45, 90),
            build=rng.choice(list(Build)),
            ethnicity=rng.choice(list(Ethnicity)),
            eye_color=rng.choice(list(EyeColor)),
            hair_style=rng.choice(list(HairStyle)),
            hair_color=rng.choice(list(HairColor)),
            fashion_style=rng.choice(list(FashionStyle)),
            vibe=rng.choice(list(Vibe)),
        )
