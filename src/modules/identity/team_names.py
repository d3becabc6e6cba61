"""Random display names for teams created at reseller sign-up."""

import random

_ADJECTIVES = (
    "bright", "swift", "bold", "sharp", "quick", "smart", "strong", "clever",
    "wise", "brave", "calm", "fresh", "prime", "elite", "super",
)
_FRUITS = (
    "apple", "banana", "cherry", "fig", "grape", "kiwi", "lemon", "mango",
    "orange", "papaya", "quince", "tangerine", "blueberry", "pineapple",
)
_WORDS = (
    "team", "squad", "crew", "group", "unit", "band", "club", "circle",
    "alliance", "guild", "league", "network", "collective", "council",
)


def generate_team_name(rng: random.Random | None = None) -> tuple[str, str]:
    """Return ``(name, slug)`` such as ``("swift mango crew 42", "swift-mango-crew-42")``."""
    rng = rng or random.Random()
    parts = [rng.choice(_ADJECTIVES), rng.choice(_FRUITS), rng.choice(_WORDS), str(rng.randint(1, 999))]
    return " ".join(parts), "-".join(parts)
