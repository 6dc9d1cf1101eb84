import typer

from cnoectl.commands import run_phase
from cnoectl.modules.phases import Phase


def run_cmd(phase: Phase = typer.Argument(..., envvar="PHASE", help="Phase to run")):
    """Run the phase named by the PHASE environment variable."""
    run_phase(phase)
