import random

# Two-digit entity codes
TYPE_POSTFIX = {
    "users": 1,
    "ideas": 2,
    "swipes": 3,
    "requests": 4,
    "matches": 5,
    "messages": 6,
}


def generate_random_id(entity: str) -> int:
    """Return a 9-digit id: 7 random digits + 2-digit postfix."""
    if entity not in TYPE_POSTFIX:
        raise ValueError(f"Unknown entity for ID generation: {entity}")
    rand7 = random.randint(1_000_000, 9_999_999)
    postfix = TYPE_POSTFIX[entity]
    return rand7 * 100 + postfix
