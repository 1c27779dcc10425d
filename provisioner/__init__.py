"""
provisioner package

This package provisions GitHub repositories from seed projects.

Key responsibilities are split across modules:
- `request_parser.py`: parse a markdown request file into generation parameters
- `seeds.py` / `workspace.py`: locate a seed and copy it into an isolated, history-free workspace
- `renderer.py`: deterministic in-place Jinja2 rendering of the workspace copy
- `github_client.py`: isolated GitHub REST API interactions
- `publisher.py`: repo creation + git init/commit/push
- `store.py`: record of created repositories
- `collaborators.py`: best-effort collaborator invite/accept handshake
- `pipeline.py`: async orchestration (seed -> copy -> render -> publish -> record -> collaborator)
- `cli.py`: CLI entrypoint
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
