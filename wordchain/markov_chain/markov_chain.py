from collections import defaultdict, Counter
from pathlib import Path
import contextlib
import json
import logging
import os
import random
import tempfile

from tqdm import tqdm

from .. import config

logger = logging.getLogger(__name__)


class ModelFormatError(ValueError):
    """Raised when a model document is malformed."""


class StateSizeMismatchError(ValueError):
    """Raised when a loaded model was built with a different state size than requested."""
    def __init__(self, expected, actual, source=None):
        self.expected = expected
        self.actual = actual
        self.source = source
        where = f" in {source}" if source else ""
        super().__init__(
            f"Model{where} was built with state_size={actual}, but state_size={expected} was requested."
        )


class DegenerateModelError(ValueError):
    """Raised when generation is requested from a model with no states."""


def _check_state_size(state_size):
    if isinstance(state_size, bool) or not isinstance(state_size, int):
        raise ValueError(f"state_size must be an integer, got {state_size!r}")
    if state_size < 1:
        raise ValueError(f"state_size must be at least 1, got {state_size}")


def _starts_upper(token):
    return token[:1].isupper()


def _is_token(token):
    """A token is a non-empty string without whitespace."""
    return isinstance(token, str) and token.split() == [token]


def _reject_duplicate_keys(pairs):
    """object_pairs_hook for json.loads that refuses repeated keys instead of keeping the last one."""
    document = {}
    for key, value in pairs:
        if key in document:
            raise ModelFormatError(f"Key {key!r} appears more than once in the same JSON object.")
        document[key] = value
    return document


def _current_umask():
    umask = os.umask(0)
    os.umask(umask)
    return umask


def sample_successor(successors, rng):
    """
    Picks a successor token with probability proportional to its count.

    Draws a single integer in [0, total) and walks the table in order,
    accumulating counts until the draw is covered. The same draw always
    selects the same token for the same table.
    """
    total = sum(successors.values())
    if total <= 0:
        raise ValueError("Cannot sample from an empty successor table.")
    draw = rng.randrange(total)
    cumulative = 0
    for token, count in successors.items():
        cumulative += count
        if draw < cumulative:
            return token
    # Unreachable while every count is positive.
    raise ValueError(f"Random draw {draw} is outside the successor table total {total}.")


class MarkovChain:
    """
    A word-level Markov chain of fixed order.

    `model` maps each state (a tuple of `state_size` consecutive tokens) to a
    Counter of the tokens observed right after it.
    """
    def __init__(self, state_size=config.STATE_SIZE):
        _check_state_size(state_size)
        self.state_size = state_size
        self.model = defaultdict(Counter)
        self._keys_cache = None

    @classmethod
    def from_tokens(cls, tokens, state_size=config.STATE_SIZE, show_progress=None):
        chain = cls(state_size)
        chain.train(tokens, show_progress=show_progress)
        return chain

    def train(self, tokens, show_progress=None):
        """
        Counts every (state, next token) pair of the token sequence in one pass.

        A sequence no longer than `state_size` produces no states.
        """
        tokens = list(tokens)
        if show_progress is None:
            show_progress = len(tokens) >= config.PROGRESS_MIN_TOKENS

        windows = range(len(tokens) - self.state_size)
        for i in tqdm(windows, desc="Building Markov chain", unit="word", disable=not show_progress):
            state = tuple(tokens[i:i + self.state_size])
            self.model[state][tokens[i + self.state_size]] += 1

        self._keys_cache = None # Invalidate cache after training
        logger.info(f"Markov chain construction complete. States: {len(self.model)}")
        if not self.model:
            logger.warning(
                f"Corpus of {len(tokens)} words is too short for state_size={self.state_size}; "
                "the model has no states."
            )
        return self

    def __len__(self):
        return len(self.model)

    def __contains__(self, state):
        return tuple(state) in self.model

    def __eq__(self, other):
        if not isinstance(other, MarkovChain):
            return NotImplemented
        return self.state_size == other.state_size and dict(self.model) == dict(other.model)

    def __repr__(self):
        return f"MarkovChain(state_size={self.state_size}, states={len(self.model)})"

    @property
    def is_empty(self):
        return not self.model

    def states(self):
        """Returns all stored states in sorted order."""
        if self._keys_cache is None:
            self._keys_cache = sorted(self.model.keys())
        return self._keys_cache

    def successors(self, state):
        """Returns a copy of the successor counts for `state` (empty if it is a dead end)."""
        return Counter(self.model.get(tuple(state), ()))

    def check_state_size(self, expected, source=None):
        if expected is not None and expected != self.state_size:
            raise StateSizeMismatchError(expected, self.state_size, source=source)

    # --- Generation ---

    def choose_seed(self, rng, start_policy=config.START_POLICY):
        """
        Picks a starting state.

        'uniform' draws from all states. 'capitalized' prefers states that look
        like the start of a sentence: the first token is capitalized and, for
        multi-word states, the last one is not (to skip runs of proper nouns).
        It falls back to 'uniform' when no state qualifies.
        """
        if start_policy not in config.START_POLICIES:
            raise ValueError(f"Unknown start policy {start_policy!r}. Expected one of {config.START_POLICIES}.")
        if not self.model:
            raise DegenerateModelError("Model is empty. There is no state to start generating from.")

        candidates = self.states()
        if start_policy == 'capitalized':
            starters = [
                s for s in candidates
                if _starts_upper(s[0]) and (len(s) == 1 or not _starts_upper(s[-1]))
            ]
            if starters:
                candidates = starters
            else:
                logger.debug("No capitalized starter found; choosing among all states.")

        starter = rng.choice(candidates)
        logger.debug(f"Starter selected: {' '.join(starter)!r}")
        return starter

    def resolve_seed(self, seed):
        """Turns a seed (a string or sequence of tokens) into a stored state, or raises ValueError."""
        if isinstance(seed, str):
            seed = seed.split()
        seed = tuple(seed)
        if len(seed) != self.state_size:
            raise ValueError(
                f"Seed {' '.join(seed)!r} has {len(seed)} words, but the model's state_size is {self.state_size}."
            )
        if seed not in self.model:
            raise ValueError(f"Seed {' '.join(seed)!r} is not a state of this model.")
        return seed

    def generate(self, max_words=config.MAX_WORDS, seed=None, rng=None, start_policy=config.START_POLICY):
        """
        Generates a list of tokens.

        The seed state's tokens come first. Sampled tokens are appended until
        `max_words` tokens have been produced or the current state is a dead
        end. When `max_words` is not larger than `state_size` the result is
        just the seed.
        """
        if isinstance(max_words, bool) or not isinstance(max_words, int) or max_words < 0:
            raise ValueError(f"max_words must be a non-negative integer, got {max_words!r}")
        if not self.model:
            raise DegenerateModelError("Model is empty. Train it on a longer corpus first.")
        if rng is None:
            rng = random.Random()

        if seed is not None:
            current_state = self.resolve_seed(seed)
        else:
            current_state = self.choose_seed(rng, start_policy)

        result = list(current_state)
        while len(result) < max_words:
            next_tokens = self.model.get(current_state)
            if not next_tokens:
                logger.debug(f"No next word found for state {' '.join(current_state)!r}, stopping generation.")
                break

            next_token = sample_successor(next_tokens, rng)
            result.append(next_token)

            # Slide the window one token forward
            current_state = (*current_state[1:], next_token)

        return result

    def generate_text(self, max_words=config.MAX_WORDS, seed=None, rng=None, start_policy=config.START_POLICY):
        return " ".join(self.generate(max_words, seed=seed, rng=rng, start_policy=start_policy))

    # --- Serialization ---

    def to_dict(self):
        return {
            'format': config.MODEL_FORMAT,
            'version': config.MODEL_VERSION,
            'state_size': self.state_size,
            'states': [
                {'state': list(state), 'successors': dict(self.model[state])}
                for state in self.states()
            ],
        }

    @classmethod
    def from_dict(cls, data):
        """
        Rebuilds a model from the document produced by `to_dict`.

        Every field is validated; anything unexpected raises ModelFormatError
        instead of producing a partial model.
        """
        if not isinstance(data, dict):
            raise ModelFormatError(f"Model document must be a JSON object, got {type(data).__name__}.")

        for field in ('format', 'version', 'state_size', 'states'):
            if field not in data:
                raise ModelFormatError(f"Model document is missing the '{field}' field.")

        if data['format'] != config.MODEL_FORMAT:
            raise ModelFormatError(f"Unknown model format {data['format']!r}, expected {config.MODEL_FORMAT!r}.")
        if data['version'] != config.MODEL_VERSION:
            raise ModelFormatError(f"Unsupported model version {data['version']!r}, expected {config.MODEL_VERSION}.")

        state_size = data['state_size']
        if isinstance(state_size, bool) or not isinstance(state_size, int) or state_size < 1:
            raise ModelFormatError(f"'state_size' must be a positive integer, got {state_size!r}.")

        entries = data['states']
        if not isinstance(entries, list):
            raise ModelFormatError(f"'states' must be a list, got {type(entries).__name__}.")

        chain = cls(state_size)
        for index, entry in enumerate(entries):
            where = f"states[{index}]"
            if not isinstance(entry, dict):
                raise ModelFormatError(f"{where} must be an object.")
            if 'state' not in entry:
                raise ModelFormatError(f"{where} is missing the 'state' field.")
            if 'successors' not in entry:
                raise ModelFormatError(f"{where} is missing the 'successors' field.")

            state = entry['state']
            if not isinstance(state, list) or not all(isinstance(token, str) for token in state):
                raise ModelFormatError(f"{where}.state must be a list of strings.")
            for token in state:
                if not _is_token(token):
                    raise ModelFormatError(
                        f"{where}.state token {token!r} must be non-empty and contain no whitespace."
                    )
            if len(state) != state_size:
                raise ModelFormatError(
                    f"{where}.state has {len(state)} tokens, but state_size is {state_size}."
                )
            state = tuple(state)
            if state in chain.model:
                raise ModelFormatError(f"{where}.state {list(state)!r} appears more than once.")

            successors = entry['successors']
            if not isinstance(successors, dict) or not successors:
                raise ModelFormatError(f"{where}.successors must be a non-empty object.")
            table = Counter()
            for token, count in successors.items():
                if not _is_token(token):
                    raise ModelFormatError(
                        f"{where}.successors key {token!r} must be non-empty and contain no whitespace."
                    )
                if isinstance(count, bool) or not isinstance(count, int):
                    raise ModelFormatError(f"{where}.successors[{token!r}] must be an integer, got {count!r}.")
                if count < 1:
                    raise ModelFormatError(f"{where}.successors[{token!r}] must be at least 1, got {count}.")
                table[token] = count
            chain.model[state] = table

        return chain

    def dumps(self):
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)

    @classmethod
    def loads(cls, text):
        try:
            data = json.loads(text, object_pairs_hook=_reject_duplicate_keys)
        except json.JSONDecodeError as e:
            raise ModelFormatError(f"Model file is not valid JSON: {e}") from e
        return cls.from_dict(data)

    def save(self, filepath):
        """
        Writes the model as JSON.

        The document goes to a temporary file next to `filepath` that is then
        renamed over it, so a failed write leaves no partial model behind.
        The file gets the usual permissions for a new file under the current
        umask rather than mkstemp's owner-only mode.
        """
        path = Path(filepath)
        fd, tmp_path = tempfile.mkstemp(prefix=f".{path.name}.", suffix='.tmp', dir=path.parent)
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(self.dumps())
                f.write('\n')
            os.chmod(tmp_path, 0o666 & ~_current_umask())
            os.replace(tmp_path, path)
        except BaseException:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(tmp_path)
            raise
        logger.info(f"Markov model with {len(self.model)} states written to {path}")

    @classmethod
    def load(cls, filepath, state_size=None):
        """
        Reads a model written by `save`.

        If `state_size` is given it must match the one stored in the file.
        """
        path = Path(filepath)
        text = path.read_text(encoding='utf-8')
        try:
            chain = cls.loads(text)
        except ModelFormatError as e:
            raise ModelFormatError(f"{path}: {e}") from e
        chain.check_state_size(state_size, source=path)
        logger.info(f"Loaded Markov model with {len(chain)} states from {path}")
        return chain
