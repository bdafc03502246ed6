"""CLI constants and configuration."""

from prompt_toolkit.styles import Style

from common.constants import UPLOAD_TYPES

COMMANDS = ["sync", "upload", "status", "set-token", "logout", "clear", "exit", "help"]

STYLE = Style.from_dict(
    {
        "prompt": "#E0A030 bold",
        "command": "#0088ff bold",
    }
)

AMBER = "\033[38;2;224;160;48m"
GREEN = "\033[38;2;80;200;120m"
RESET = "\033[0m"

LOGO = f"""{AMBER}
 ██████╗ ███████╗ ██████╗██╗██████╗ ███████╗███████╗██╗      ██████╗ ██╗    ██╗
 ██╔══██╗██╔════╝██╔════╝██║██╔══██╗██╔════╝██╔════╝██║     ██╔═══██╗██║    ██║
 ██████╔╝█████╗  ██║     ██║██████╔╝█████╗  █████╗  ██║     ██║   ██║██║ █╗ ██║
 ██╔══██╗██╔══╝  ██║     ██║██╔═══╝ ██╔══╝  ██╔══╝  ██║     ██║   ██║██║███╗██║
 ██║  ██║███████╗╚██████╗██║██║     ███████╗██║     ███████╗╚██████╔╝╚███╔███╔╝
 ╚═╝  ╚═╝╚══════╝ ╚═════╝╚═╝╚═╝     ╚══════╝╚═╝     ╚══════╝ ╚═════╝  ╚══╝╚══╝
{RESET}"""

WELCOME_TITLE = "RecipeFlow CLI - Recipe sync client"
WELCOME_HELP = "Type 'help' for commands or 'exit' to quit.\n"

PROMPT_TEXT = "recipeflow> "

HELP_TEXT = f"""Available commands:
  sync [recipes.json ...]             Extract recipes and sync them to the server
  upload <file> <type> [--resume]     Upload a prepared payload in chunks ({', '.join(UPLOAD_TYPES)})
  status                              Show configuration and sync state
  set-token <token>                   Store a bearer token in the config file
  logout                              Clear the stored bearer token
  clear                               Clear screen and redisplay welcome message
  help                                Show this help
  exit                                Exit REPL

Recipe files are JSON lists of recipe records (or {{"recipes": [...]}}).
Files given to 'sync' take priority over the configured recipe files.
An exported icon directory with icon-metadata.json can be uploaded as 'icons'.
Examples:
  set-token 3f9a0c...
  sync exports/gregtech.json exports/vanilla.json
  upload exports/icons.zip icons
  upload exports/icons icons
  upload exports/items.json items --resume
  status"""

RECIPE_FILE_EXTENSIONS = (".json",)
UPLOAD_FILE_EXTENSIONS = (".json", ".zip", ".gz")
