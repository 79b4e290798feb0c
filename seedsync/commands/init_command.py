"""
Initialize command for setting up seedsync in a project.
"""

from pathlib import Path
import logging

from rich.console import Console

logger = logging.getLogger(__name__)
console = Console()


SEEDSYNC_CONFIG_TEMPLATE = '''{
  "database_url": null,
  "seeds_path": "seeds",
  "default_environment": "development",
  "concurrency": 50,
  "require_confirmation_prod": true,
  "log_level": "INFO"
}
'''

EXAMPLE_SEED_TEMPLATE = '''# Rows seedsync keeps in sync with the database.
#
# Every entity needs a unique $id. Reference another entity's primary key
# with {$id: other-id}. Entries removed from this file are deleted on the
# next run because synchronize is true.
synchronize: true
namingStrategy: SnakeCase

entities:
  - Role:
      $id: role-admin
      name: admin

  - User:
      $id: user-admin
      emailAddress: admin@example.com
      roleId:
        $id: role-admin
'''


def initialize_project(config):
    """
    Initialize seedsync in the current project.

    Args:
        config: Configuration object
    """
    console.print("[bold]Initializing seedsync...[/bold]")

    # Create seeds directory
    seeds_path = Path(config.seeds_path)
    if not seeds_path.exists():
        seeds_path.mkdir(parents=True, exist_ok=True)
        console.print(f"✓ Created seeds directory: {seeds_path}")
    else:
        console.print(f"• Seeds directory already exists: {seeds_path}")

    # Create configuration file if it doesn't exist
    config_exists = any(Path(f).exists() for f in config.CONFIG_FILE_NAMES)

    if not config_exists:
        config_path = Path("seedsync.config.json")
        config_path.write_text(SEEDSYNC_CONFIG_TEMPLATE)
        console.print(f"✓ Created configuration file: {config_path}")
    else:
        console.print("• Configuration file already exists")

    # Create example seed file
    example_seed = seeds_path / "example.yml"
    if not example_seed.exists():
        example_seed.write_text(EXAMPLE_SEED_TEMPLATE)
        console.print(f"✓ Created example seed file: {example_seed}")

    console.print("\nThe tracking table is created automatically on the first run.")
    logger.debug(f"Initialized seedsync in {Path.cwd()}")
