"""
Driver for the Bitwarden CLI.

Every invocation is described by a CliStep: the arguments, the environment
bindings it needs and the predicate that decides whether it worked. Secrets
travel through environment variables wherever the CLI accepts them there.
"""

import os
import logging
import subprocess
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from . import config
from .errors import CliCommandError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CliResult:
    """Exit code and trimmed standard output of one invocation."""
    exit_code: int
    output: str

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


def exited_cleanly(result: CliResult) -> bool:
    return result.ok


def returned_session_key(result: CliResult) -> bool:
    return result.ok and bool(result.output)


def reported_import(result: CliResult) -> bool:
    return result.ok and config.CLI_IMPORT_SUCCESS_MARKER in result.output


@dataclass
class CliStep:
    """One CLI invocation and how to judge it."""
    name: str
    args: List[str]
    failure_message: str
    env: Dict[str, str] = field(default_factory=dict)
    succeeded: Callable[[CliResult], bool] = exited_cleanly

    def __repr__(self) -> str:
        # Arguments may hold the master password.
        return f"CliStep(name={self.name!r})"


class BitwardenCli:
    """Runs Bitwarden CLI commands against an isolated data directory."""

    def __init__(self, cli_path: str, data_dir: str):
        """
        Args:
            cli_path: Path to the `bw` executable
            data_dir: Directory the CLI keeps its state in
        """
        self.cli_path = cli_path
        self.data_dir = data_dir

    def build_env(self, overrides: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        """Process environment for one invocation."""
        env = os.environ.copy()
        env[config.ENV_APPDATA_DIR] = self.data_dir
        env[config.ENV_NO_INTERACTION] = "true"
        if overrides:
            env.update(overrides)
        return env

    def execute(self, step: CliStep) -> CliResult:
        """
        Run a step and wait for it to exit.

        Only standard output is captured. Its lines are joined and trimmed.

        Raises:
            CliCommandError: If the executable cannot be started
        """
        try:
            completed = subprocess.run(
                [self.cli_path] + step.args,
                stdout=subprocess.PIPE,
                env=self.build_env(step.env),
                text=True,
                encoding='utf-8',
                errors='replace',
            )
        except OSError as e:
            logger.error(f"Could not start Bitwarden CLI for '{step.name}': {e}")
            raise CliCommandError(step.name, step.failure_message) from e

        output = "".join((completed.stdout or "").splitlines()).strip()
        logger.info(f"bw {step.name} exited with code {completed.returncode}")
        return CliResult(completed.returncode, output)

    def run_step(self, step: CliStep) -> CliResult:
        """
        Run a step and apply its success predicate.

        Raises:
            CliCommandError: If the step did not succeed
        """
        result = self.execute(step)
        if not step.succeeded(result):
            raise CliCommandError(step.name, step.failure_message)
        return result

    def config_server(self, server_url: str) -> None:
        """Point the CLI at a self-hosted or regional server."""
        self.run_step(CliStep(
            name="config server",
            args=["config", "server", server_url],
            failure_message=config.MSG_CONFIG_SERVER_FAILED,
        ))

    def login(self, client_id: str, client_secret: str) -> str:
        """
        Log in with a personal API key.

        Returns:
            The session key, or an empty string when the vault still has to be unlocked
        """
        result = self.run_step(CliStep(
            name="login",
            args=["login", "--apikey", "--raw"],
            failure_message=config.MSG_LOGIN_FAILED,
            env={
                config.ENV_CLIENT_ID: client_id,
                config.ENV_CLIENT_SECRET: client_secret,
                # With BW_NOINTERACTION=true the CLI issues an invalid session
                # key on API key login.
                config.ENV_NO_INTERACTION: "false",
            },
        ))
        return result.output

    def unlock(self, master_password: str) -> str:
        """
        Unlock the vault with the master password.

        Returns:
            The session key
        """
        result = self.run_step(CliStep(
            name="unlock",
            args=["unlock", master_password, "--raw"],
            failure_message=config.MSG_UNLOCK_FAILED,
            succeeded=returned_session_key,
        ))
        return result.output

    def import_file(self, import_format: str, filepath: str, session_key: str) -> None:
        """Import a file in the given `bw import` format into the vault."""
        self.run_step(CliStep(
            name="import",
            args=["import", import_format, filepath],
            failure_message=config.MSG_IMPORT_FAILED,
            env={config.ENV_SESSION: session_key},
            succeeded=reported_import,
        ))
