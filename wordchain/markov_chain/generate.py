import logging
import random
from pathlib import Path

import click

from .. import config
from .markov_chain import MarkovChain, ModelFormatError, StateSizeMismatchError, DegenerateModelError
from .train import build_model, load_corpus_model, tokenizer_options, progress_option

logger = logging.getLogger(__name__)


def generate_from_text(text, max_words=config.MAX_WORDS, state_size=config.STATE_SIZE, tokenizer=None,
                       seed=None, rng=None, start_policy=config.START_POLICY, show_progress=None):
    """Builds a model from `text` and returns generated text."""
    model = build_model(text, state_size, tokenizer=tokenizer, show_progress=show_progress)
    return model.generate_text(max_words, seed=seed, rng=rng, start_policy=start_policy)


def generate_from_model(model_file, max_words=config.MAX_WORDS, state_size=config.STATE_SIZE,
                        seed=None, rng=None, start_policy=config.START_POLICY):
    """
    Loads a saved model and returns generated text.

    Raises StateSizeMismatchError if the model was built with a different
    state size than `state_size`.
    """
    model = MarkovChain.load(model_file, state_size=state_size)
    return model.generate_text(max_words, seed=seed, rng=rng, start_policy=start_policy)


# --- Options shared by both generate commands ---

def generation_options(func):
    func = click.option('--start-policy', type=click.Choice(config.START_POLICIES), default=config.START_POLICY,
                        show_default=True, help="How to pick the starting state when no --seed is given.")(func)
    func = click.option('--random-seed', type=int, default=None,
                        help="Seed for the random number generator, for reproducible output.")(func)
    func = click.option('--seed', 'seed_text', type=str, default=None,
                        help="Space separated words to start from. Must be a state of the model.")(func)
    return func


def emit_text(model, max_words, seed_text, random_seed, start_policy):
    """Generates from `model` and prints the result, reporting an empty model instead of failing."""
    if model.is_empty:
        click.secho(
            f"Warning: the model has no states (the corpus is too short for state_size={model.state_size}). "
            "Nothing to generate.",
            fg='yellow', err=True,
        )
        return

    seed = None
    if seed_text is not None:
        try:
            seed = model.resolve_seed(seed_text)
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="'--seed'") from e

    rng = random.Random(random_seed)
    try:
        words = model.generate(max_words, seed=seed, rng=rng, start_policy=start_policy)
    except DegenerateModelError as e:
        click.secho(f"Warning: {e}", fg='yellow', err=True)
        return
    logger.info(f"Generated {len(words)} words.")
    click.echo(" ".join(words))


@click.command('generate')
@click.argument('input_file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument('max_words', type=click.IntRange(min=0))
@click.argument('state_size', type=click.IntRange(min=1))
@generation_options
@tokenizer_options
@progress_option
def generate(input_file, max_words, state_size, seed_text, random_seed, start_policy,
             lowercase, strip_punctuation, progress):
    """
    Builds a Markov chain from INPUT_FILE and prints up to MAX_WORDS generated words.
    """
    model = load_corpus_model(input_file, state_size, lowercase, strip_punctuation, progress)
    emit_text(model, max_words, seed_text, random_seed, start_policy)


@click.command('generate-from-model')
@click.argument('model_file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument('max_words', type=click.IntRange(min=0))
@click.argument('state_size', type=click.IntRange(min=1))
@generation_options
def generate_from_model_command(model_file, max_words, state_size, seed_text, random_seed, start_policy):
    """
    Loads the model in MODEL_FILE and prints up to MAX_WORDS generated words.

    STATE_SIZE must match the state size the model was built with.
    """
    try:
        model = MarkovChain.load(model_file, state_size=state_size)
    except (ModelFormatError, StateSizeMismatchError) as e:
        raise click.ClickException(str(e)) from e
    except (OSError, UnicodeDecodeError) as e:
        raise click.ClickException(f"Could not read model {model_file}: {e}") from e
    emit_text(model, max_words, seed_text, random_seed, start_policy)


if __name__ == '__main__':
    logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)
    generate()
