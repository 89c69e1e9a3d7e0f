PASS_THRESHOLD = 70


def score(correct_count: int, total: int) -> int:
    """Percentage of correct answers, rounded half up to an int."""
    if total <= 0:
        raise ValueError("total must be positive")
    if not 0 <= correct_count <= total:
        raise ValueError(f"correct_count {correct_count} outside 0..{total}")
    # integer form of floor(100 * c / t + 0.5)
    return (200 * correct_count + total) // (2 * total)


def is_pass(percentage: int, threshold: int = PASS_THRESHOLD) -> bool:
    return percentage >= threshold
