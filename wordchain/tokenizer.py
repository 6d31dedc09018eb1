import string
import logging

logger = logging.getLogger(__name__)


class WordTokenizer:
    """
    Splits raw text into word tokens on runs of whitespace.

    By default tokens are left exactly as they appear in the text, punctuation
    and case included. Normalization is opt-in:

    - lowercase: lower-case every token.
    - strip_punctuation: strip leading/trailing punctuation from every token
      and drop tokens that are left empty (a lone "--" for instance).
    """
    def __init__(self, lowercase=False, strip_punctuation=False):
        self.lowercase = lowercase
        self.strip_punctuation = strip_punctuation

    def _normalize(self, token):
        if self.strip_punctuation:
            token = token.strip(string.punctuation)
        if self.lowercase:
            token = token.lower()
        return token

    def iter_tokens(self, text):
        """Yields tokens one at a time. Calling it again restarts from the beginning."""
        for fragment in text.split():
            token = self._normalize(fragment)
            if token:
                yield token

    def tokenize(self, text):
        """Returns the tokens of `text` as a list. Empty input gives an empty list."""
        tokens = list(self.iter_tokens(text))
        logger.info(f"Collected {len(tokens)} words from input.")
        return tokens


def tokenize(text, lowercase=False, strip_punctuation=False):
    return WordTokenizer(lowercase=lowercase, strip_punctuation=strip_punctuation).tokenize(text)
