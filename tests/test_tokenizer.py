from wordchain.tokenizer import WordTokenizer, tokenize


def test_splits_on_runs_of_whitespace():
    text = "The  cat\tsat\n\non   the mat. "
    assert tokenize(text) == ["The", "cat", "sat", "on", "the", "mat."]


def test_empty_and_blank_input():
    assert tokenize("") == []
    assert tokenize(" \n\t ") == []


def test_no_normalization_by_default():
    assert tokenize("Hello, World!") == ["Hello,", "World!"]


def test_lowercase_option():
    assert tokenize("Hello World", lowercase=True) == ["hello", "world"]


def test_strip_punctuation_drops_empty_tokens():
    tokens = tokenize('"Well," she said -- "no."', strip_punctuation=True)
    assert tokens == ["Well", "she", "said", "no"]


def test_iter_tokens_is_restartable():
    tokenizer = WordTokenizer()
    text = "one two three"
    assert list(tokenizer.iter_tokens(text)) == list(tokenizer.iter_tokens(text)) == ["one", "two", "three"]
