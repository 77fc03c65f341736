# wsldoctor/cli/commands: Command modules for the wsldoctor CLI.
#
# Each module in this package provides one or more CLI commands.

from .config_cmd import config_app
from .diagnose import diagnose
from .fix import fix
from .list_cmd import list_remediations
from .recommend import recommend

__all__ = [
    "config_app",
    "diagnose",
    "fix",
    "list_remediations",
    "recommend",
]
