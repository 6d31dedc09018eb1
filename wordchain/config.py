import os
import logging
import sys

# --- Model File Format ---
# Bump MODEL_VERSION whenever the layout written by MarkovChain.to_dict changes.
MODEL_FORMAT = 'wordchain-markov'
MODEL_VERSION = 1


def _int_from_env(name, default):
    raw = os.environ.get(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        return int(raw)
    except ValueError:
        print(f"Warning: {name}={raw!r} is not an integer. Using the default of {default}.", file=sys.stderr)
        return default


# --- Generation Defaults ---
STATE_SIZE = _int_from_env('WORDCHAIN_STATE_SIZE', 2)
MAX_WORDS = _int_from_env('WORDCHAIN_MAX_WORDS', 300)

START_POLICIES = ('uniform', 'capitalized')
START_POLICY = os.environ.get('WORDCHAIN_START_POLICY', 'uniform')
if START_POLICY not in START_POLICIES:
    print(f"Warning: Unknown start policy {START_POLICY!r}. Falling back to 'uniform'.", file=sys.stderr)
    START_POLICY = 'uniform'

# Corpora shorter than this build too fast for a progress bar to be useful.
PROGRESS_MIN_TOKENS = _int_from_env('WORDCHAIN_PROGRESS_MIN_TOKENS', 100_000)

# --- Logging ---
LOG_FORMAT = '%(levelname)s: %(message)s'
LOG_LEVEL = logging.getLevelName(os.environ.get('WORDCHAIN_LOG_LEVEL', 'WARNING').upper())
if not isinstance(LOG_LEVEL, int):
    LOG_LEVEL = logging.WARNING
