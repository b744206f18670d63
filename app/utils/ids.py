import random
import time


def generate_short_id() -> str:
    """
    Short, human-readable numeric id for characters (typically 10 digits).

    A random 6-digit number followed by the last 4 digits of the current
    epoch milliseconds. Callers must still check for collisions.
    """
    random_part = random.randint(100000, 999999)
    timestamp_part = int(time.time() * 1000) % 10000
    return f"{random_part}{timestamp_part}"
