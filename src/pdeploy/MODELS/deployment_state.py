"""
State threaded through the deployment pipeline.
"""
from typing import List, Optional
from dataclasses import dataclass, field

from .image_target import ImageTarget


@dataclass
class DeploymentState:
    """Results gathered by the pipeline steps, in the order they run."""

    token: Optional[str] = None
    endpoint_id: Optional[int] = None
    target: Optional[ImageTarget] = None
    removed_containers: List[str] = field(default_factory=list)
    removed_image: Optional[str] = None
    archive_path: Optional[str] = None
    context_files: List[str] = field(default_factory=list)
    container_id: Optional[str] = None
    resource_control_id: Optional[int] = None
    team_ids: List[int] = field(default_factory=list)
    started: bool = False
    completed_steps: List[str] = field(default_factory=list)
