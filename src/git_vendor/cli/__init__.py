"""
git-vendor CLI package.

Commands are auto-discovered from the domain subfolders (vendor/, attr/,
tree/). Shared helpers:

- _output: Output formatting (JSON/text modes)
- _args: Common argument registration helpers
- _utils: Repository discovery, logging setup and exit codes
"""
from ._output import OutputFormatter
from ._args import (
    add_json_flag,
    add_repo_root_flag,
    add_verbose_flag,
    add_selection_args,
    add_standard_flags,
)
from ._utils import (
    EXIT_CONFLICT,
    EXIT_ERROR,
    exit_code_for,
    get_repo_root,
    get_start_dir,
    open_vendor,
    setup_logging,
)

__all__ = [
    # Output formatting
    "OutputFormatter",
    # Argument helpers
    "add_json_flag",
    "add_repo_root_flag",
    "add_verbose_flag",
    "add_selection_args",
    "add_standard_flags",
    # Utilities
    "EXIT_CONFLICT",
    "EXIT_ERROR",
    "exit_code_for",
    "get_repo_root",
    "get_start_dir",
    "open_vendor",
    "setup_logging",
]
