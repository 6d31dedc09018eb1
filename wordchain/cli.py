"""
Command-line entry point for wordchain.

    wordchain generate INPUT_FILE MAX_WORDS STATE_SIZE
    wordchain generate-from-model MODEL_FILE MAX_WORDS STATE_SIZE
    wordchain train INPUT_FILE OUTPUT_MODEL_FILE STATE_SIZE
"""
import logging

import click

from . import config
from .markov_chain.generate import generate, generate_from_model_command
from .markov_chain.train import train


@click.group()
@click.option('-v', '--verbose', is_flag=True, help="Log progress information to stderr.")
def cli(verbose):
    """Generate text with a word-level Markov chain."""
    level = logging.INFO if verbose else config.LOG_LEVEL
    logging.basicConfig(level=level, format=config.LOG_FORMAT)
    logging.getLogger().setLevel(level)


cli.add_command(generate)
cli.add_command(generate_from_model_command)
cli.add_command(train)


if __name__ == '__main__':
    cli()
