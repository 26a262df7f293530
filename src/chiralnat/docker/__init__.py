"""
chiralnat/docker/

Docker and Docker Compose command wrappers used by the harness.
"""

from .runner import CommandRunner, CommandResult
from .compose import DockerCompose, detect_compose_command

__all__ = ['CommandRunner', 'CommandResult', 'DockerCompose', 'detect_compose_command']
