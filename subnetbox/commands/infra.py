"""
Infra tasks - runs the cargo-make tasks that start validator nodes and the
local parent chain.
"""

from pathlib import Path
from typing import Callable, Optional, Sequence, Union

from subnetbox.commands.constants import INFRA_MAKEFILE
from subnetbox.commands.process import run_command


class InfraTasks:
    """Invokes ``cargo make`` tasks from the source tree's infra makefile."""

    def __init__(
        self,
        ipc_folder: Union[Path, str],
        runner: Callable[..., str] = run_command,
    ):
        self.ipc_folder = Path(ipc_folder)
        self.runner = runner

    def task_args(self, task: str, env: Optional[dict[str, str]] = None) -> list[str]:
        cmd = ["cargo", "make", "--makefile", INFRA_MAKEFILE]
        for key, value in (env or {}).items():
            cmd.extend(["-e", f"{key}={value}"])
        cmd.append(task)
        return cmd

    def run(
        self,
        task: str,
        env: Optional[dict[str, str]] = None,
        secrets: Sequence[str] = (),
    ) -> str:
        """Run ``task`` and return its combined output."""
        return self.runner(
            self.task_args(task, env), cwd=self.ipc_folder, secrets=secrets
        )

    def start_validator(self, env: dict[str, str], secrets: Sequence[str] = ()) -> str:
        return self.run("child-validator", env, secrets=secrets)

    def anvil_pull(self) -> str:
        return self.run("anvil-pull")

    def anvil_start(self, subnet_id: str, host_port: int) -> str:
        return self.run(
            "anvil-start",
            {
                "NODE_NAME": "anvil",
                "SUBNET_ID": subnet_id,
                "ANVIL_HOST_PORT": str(host_port),
            },
        )
