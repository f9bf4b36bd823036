"""Create, configure, inspect and control Linux cgroup v1 hierarchies."""

__version__ = "0.1.0"