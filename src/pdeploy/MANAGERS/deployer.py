# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Orchestration of a full build-and-deploy run against Portainer.
"""
from typing import Callable, List, Optional, Tuple

from ..MODELS.deploy_config import DeployConfig
from ..MODELS.deployment_state import DeploymentState
from ..PORTAINER.portainer_client import PortainerClient
from . import deploy_steps
from .deploy_steps import CredentialsProvider, DeployContext

Step = Callable[[DeployContext], None]

DEFAULT_STEPS: List[Tuple[str, Step]] = [
    ("authenticate", deploy_steps.authenticate),
    ("resolve_endpoint", deploy_steps.resolve_endpoint),
    ("resolve_image", deploy_steps.resolve_image),
    ("remove_old_image", deploy_steps.remove_old_image),
    ("build_image", deploy_steps.build_image),
    ("remove_old_container", deploy_steps.remove_old_container),
    ("create_container", deploy_steps.create_container),
    ("assign_teams", deploy_steps.assign_teams),
    ("start_container", deploy_steps.start_container),
]


class Deployer:
    """
    Runs the deployment steps one after another.
    A failing step raises and ends the run; nothing already done is rolled back.
    """
    def __init__(self,
                 config: DeployConfig,
                 credentials: CredentialsProvider,
                 client: Optional[PortainerClient] = None,
                 base_dir: str = ".",
                 steps: Optional[List[Tuple[str, Step]]] = None):
        """
        Initializes the deployer.

        :param config: Configuration for this run.
        :param credentials: Called once at login, returns (username, password).
        :param client: Portainer client. Built from the configuration if omitted.
        :param base_dir: Project directory to build from.
        :param steps: Named steps to run. Defaults to the full deployment.
        """
        self.config = config
        self.client = client if client is not None else PortainerClient.from_config(config)
        self.steps = steps if steps is not None else list(DEFAULT_STEPS)
        self.context = DeployContext(
            config=config,
            client=self.client,
            credentials=credentials,
            base_dir=base_dir,
        )

    @property
    def state(self) -> DeploymentState:
        return self.context.state

    def run(self) -> DeploymentState:
        """
        Executes every step in order.

        :return: The state collected by the steps.
        """
        for name, step in self.steps:
            step(self.context)
            self.state.completed_steps.append(name)
        return self.state
