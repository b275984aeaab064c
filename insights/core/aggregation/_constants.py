"""
Constants shared by the aggregation modules.
"""

from typing import Final, Tuple

# Percentages are integers on a 0..100 scale
PERCENT_SCALE: Final[int] = 100

# Numbered practice sessions are stored with this test_mode prefix,
# e.g. "practice_3" for practice test 3.
PRACTICE_MODE_PREFIX: Final[str] = "practice_"

# Drill difficulty levels, easiest first
DRILL_DIFFICULTY_LEVELS: Final[Tuple[int, ...]] = (1, 2, 3)

# Difficulty assumed for drill sessions that never recorded one
DEFAULT_DRILL_DIFFICULTY: Final[int] = 1

# Decimal places kept on practice-test improvement slopes
TREND_DECIMALS: Final[int] = 2
