import logging
from pathlib import Path

import click

from .. import config
from ..tokenizer import WordTokenizer
from .markov_chain import MarkovChain

logger = logging.getLogger(__name__)


def read_corpus(input_file):
    """Reads the whole corpus file as UTF-8 text."""
    path = Path(input_file)
    logger.info(f"Reading corpus from {path}...")
    return path.read_text(encoding='utf-8')


def build_model(text, state_size=config.STATE_SIZE, tokenizer=None, show_progress=None):
    """Tokenizes `text` and builds a Markov chain from it."""
    if tokenizer is None:
        tokenizer = WordTokenizer()
    tokens = tokenizer.tokenize(text)
    logger.info(f"Training Markov chain (state_size {state_size}) on {len(tokens)} words")
    return MarkovChain.from_tokens(tokens, state_size, show_progress=show_progress)


def train_model(input_file, output_file, state_size=config.STATE_SIZE, tokenizer=None, show_progress=None):
    """Builds a model from the corpus at `input_file` and saves it to `output_file`."""
    model = build_model(read_corpus(input_file), state_size, tokenizer=tokenizer, show_progress=show_progress)
    output_file = Path(output_file)
    output_file.parent.mkdir(parents=True, exist_ok=True)
    model.save(output_file)
    return model


# --- Options shared by the commands that start from a text corpus ---

def tokenizer_options(func):
    func = click.option('--strip-punctuation', is_flag=True,
                        help="Strip leading/trailing punctuation from each word.")(func)
    func = click.option('--lowercase', is_flag=True, help="Lower-case every word.")(func)
    return func


def progress_option(func):
    return click.option('--progress/--no-progress', default=None,
                        help="Show a progress bar while building (default: only for large corpora).")(func)


def load_corpus_model(input_file, state_size, lowercase, strip_punctuation, progress):
    """Reads and builds a model for a command, turning failures into click errors."""
    try:
        text = read_corpus(input_file)
    except (OSError, UnicodeDecodeError) as e:
        raise click.ClickException(f"Could not read corpus {input_file}: {e}") from e
    tokenizer = WordTokenizer(lowercase=lowercase, strip_punctuation=strip_punctuation)
    return build_model(text, state_size, tokenizer=tokenizer, show_progress=progress)


@click.command('train')
@click.argument('input_file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument('output_model_file', type=click.Path(dir_okay=False, writable=True, path_type=Path))
@click.argument('state_size', type=click.IntRange(min=1))
@tokenizer_options
@progress_option
def train(input_file, output_model_file, state_size, lowercase, strip_punctuation, progress):
    """
    Builds a Markov chain from INPUT_FILE and saves it to OUTPUT_MODEL_FILE.
    """
    model = load_corpus_model(input_file, state_size, lowercase, strip_punctuation, progress)
    if model.is_empty:
        click.secho(
            f"Warning: {input_file} is too short for state_size={state_size}. "
            "The saved model has no states and cannot generate text.",
            fg='yellow', err=True,
        )

    try:
        output_model_file.parent.mkdir(parents=True, exist_ok=True)
        model.save(output_model_file)
    except OSError as e:
        raise click.ClickException(f"Could not write model to {output_model_file}: {e}") from e

    click.echo(f"Trained Markov chain (state_size {state_size}) with {len(model)} states.")
    click.echo(f"Model saved to {output_model_file}")


if __name__ == '__main__':
    logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)
    train()
