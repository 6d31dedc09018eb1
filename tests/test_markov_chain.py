import random
from collections import Counter

import pytest

from wordchain.markov_chain.markov_chain import MarkovChain, DegenerateModelError, sample_successor

CAT_TOKENS = ["the", "cat", "sat", "on", "the", "mat"]


class StubRandom:
    """Returns pre-set draws from randrange and always picks the first element in choice."""
    def __init__(self, draws):
        self.draws = list(draws)
        self.totals = []

    def randrange(self, total):
        self.totals.append(total)
        return self.draws.pop(0)

    def choice(self, seq):
        return seq[0]


def test_build_cat_example():
    chain = MarkovChain.from_tokens(CAT_TOKENS, state_size=2)
    assert dict(chain.model) == {
        ("the", "cat"): {"sat": 1},
        ("cat", "sat"): {"on": 1},
        ("sat", "on"): {"the": 1},
        ("on", "the"): {"mat": 1},
    }
    assert ("the", "mat") not in chain
    assert len(chain) == 4


def test_counts_accumulate():
    chain = MarkovChain.from_tokens("a b a b a c".split(), state_size=1)
    assert chain.successors(("a",)) == Counter({"b": 2, "c": 1})
    assert chain.successors(("b",)) == Counter({"a": 2})
    assert ("c",) not in chain


def test_states_match_windows_of_random_corpus():
    rng = random.Random(3)
    tokens = [rng.choice("abcde") for _ in range(500)]
    for k in (1, 2, 3):
        chain = MarkovChain.from_tokens(tokens, state_size=k)
        expected = Counter()
        for i in range(len(tokens) - k):
            expected[(tuple(tokens[i:i + k]), tokens[i + k])] += 1

        assert set(chain.states()) == {state for state, _ in expected}
        for (state, token), count in expected.items():
            assert chain.model[state][token] == count
        assert all(count >= 1 for table in chain.model.values() for count in table.values())
        assert all(len(state) == k for state in chain.states())


@pytest.mark.parametrize("tokens", [[], ["one"], ["one", "two"]])
def test_corpus_not_longer_than_state_size_has_no_states(tokens):
    chain = MarkovChain.from_tokens(tokens, state_size=2)
    assert chain.is_empty
    assert len(chain) == 0


@pytest.mark.parametrize("state_size", [0, -1, 1.5, True])
def test_invalid_state_size(state_size):
    with pytest.raises(ValueError):
        MarkovChain(state_size)


def test_train_accepts_an_iterator():
    chain = MarkovChain(2).train(iter(CAT_TOKENS))
    assert chain == MarkovChain.from_tokens(CAT_TOKENS, state_size=2)


def test_sample_successor_weighted_walk():
    table = Counter({"x": 2, "y": 3})
    picks = []
    for draw in range(5):
        rng = StubRandom([draw])
        picks.append(sample_successor(table, rng))
        assert rng.totals == [5]
    assert picks == ["x", "x", "y", "y", "y"]


def test_sample_successor_empty_table():
    with pytest.raises(ValueError):
        sample_successor(Counter(), StubRandom([0]))


def test_sample_successor_distribution_follows_counts():
    table = Counter({"common": 9, "rare": 1})
    rng = random.Random(11)
    picks = Counter(sample_successor(table, rng) for _ in range(5000))
    assert 0.85 < picks["common"] / 5000 < 0.95


def test_generate_stops_at_dead_end():
    chain = MarkovChain.from_tokens(CAT_TOKENS, state_size=2)
    words = chain.generate(100, seed=("the", "cat"), rng=random.Random(0))
    assert words == CAT_TOKENS


def test_generate_respects_max_words():
    chain = MarkovChain.from_tokens(CAT_TOKENS, state_size=2)
    assert chain.generate(4, seed="the cat") == ["the", "cat", "sat", "on"]


@pytest.mark.parametrize("max_words", [0, 1, 2])
def test_generate_small_budget_gives_only_the_seed(max_words):
    chain = MarkovChain.from_tokens(CAT_TOKENS, state_size=2)
    assert chain.generate(max_words, seed=["cat", "sat"]) == ["cat", "sat"]


def test_generate_uses_stub_draws():
    chain = MarkovChain.from_tokens("a b a c a b".split(), state_size=1)
    # ('a',) -> {'b': 2, 'c': 1}; draw 2 picks 'c', then ('c',) -> {'a': 1}
    rng = StubRandom([2, 0, 0])
    assert chain.generate(4, seed=["a"], rng=rng) == ["a", "c", "a", "b"]


def test_generate_is_reproducible_with_seeded_rng():
    text = "one fish two fish red fish blue fish one fish two fish old fish new fish".split()
    chain = MarkovChain.from_tokens(text, state_size=1)
    first = chain.generate(30, rng=random.Random(5))
    second = chain.generate(30, rng=random.Random(5))
    assert first == second
    assert len(first) <= 30


def test_generated_transitions_exist_in_model():
    rng = random.Random(8)
    tokens = [rng.choice(["a", "b", "c", "d"]) for _ in range(200)]
    chain = MarkovChain.from_tokens(tokens, state_size=2)
    words = chain.generate(150, rng=random.Random(1))
    for i in range(len(words) - 2):
        state = tuple(words[i:i + 2])
        assert words[i + 2] in chain.successors(state)


def test_seed_must_be_a_known_state():
    chain = MarkovChain.from_tokens(CAT_TOKENS, state_size=2)
    with pytest.raises(ValueError, match="not a state"):
        chain.generate(10, seed="the dog")
    with pytest.raises(ValueError, match="state_size"):
        chain.generate(10, seed="the")


def test_negative_max_words():
    chain = MarkovChain.from_tokens(CAT_TOKENS, state_size=2)
    with pytest.raises(ValueError):
        chain.generate(-1)


def test_empty_model_is_degenerate():
    chain = MarkovChain.from_tokens([], state_size=2)
    with pytest.raises(DegenerateModelError):
        chain.generate(10)
    with pytest.raises(DegenerateModelError):
        chain.choose_seed(random.Random(0))


def test_capitalized_start_policy():
    tokens = "the dog ran . The cat sat . Big Ben rang".split()
    chain = MarkovChain.from_tokens(tokens, state_size=2)
    for seed in range(10):
        assert chain.choose_seed(random.Random(seed), "capitalized") == ("The", "cat")


def test_capitalized_start_policy_falls_back_to_all_states():
    chain = MarkovChain.from_tokens(CAT_TOKENS, state_size=2)
    assert chain.choose_seed(random.Random(0), "capitalized") in chain.states()


def test_unknown_start_policy():
    chain = MarkovChain.from_tokens(CAT_TOKENS, state_size=2)
    with pytest.raises(ValueError, match="start policy"):
        chain.generate(10, start_policy="first")


def test_generate_text_joins_with_spaces():
    chain = MarkovChain.from_tokens(CAT_TOKENS, state_size=2)
    assert chain.generate_text(10, seed="sat on") == "sat on the mat"
