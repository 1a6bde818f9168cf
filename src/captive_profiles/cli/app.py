"""Typer CLI application."""

import logging
import sys

import typer

from captive_profiles.cli.commands.extract_log import extract_log
from captive_profiles.cli.commands.extract_pcap import extract_pcap
from captive_profiles.cli.commands.params import params
from captive_profiles.cli.commands.revise import revise
from captive_profiles.cli.commands.versions import delete, export, history, share, show
from captive_profiles.config.settings import AppConfig

app = typer.Typer(
    name="captive-profiles",
    help="Captive-portal vendor integration profiles",
    no_args_is_help=True,
)


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level")) -> None:
    config = AppConfig.from_env()
    level = "DEBUG" if verbose else config.log_level
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    for problem in config.validate():
        logging.getLogger(__name__).warning("Config: %s", problem)


app.command("extract-log")(extract_log)
app.command("extract-pcap")(extract_pcap)
app.command()(revise)
app.command()(history)
app.command()(show)
app.command()(export)
app.command()(share)
app.command()(delete)
app.command()(params)
