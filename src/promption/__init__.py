"""promption: local manager for reusable prompts, rules, workflows and agent configs."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("promption")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"
