"""
Rankcord Discord Bot
====================

A Discord bot that rewards chat activity with experience points, levels and
rank roles, and exposes level, leaderboard and rank commands.
"""

import os
import sys
from pathlib import Path


def resolve_base_dir() -> Path:
    """Determine the base directory of the project.

    Resolution order:
    1. RANKCORD_HOME environment variable, if set.
    2. If running in a frozen/compiled context (e.g., PyInstaller, Nuitka), use the executable's directory.
    3. Otherwise, assume running from source and use the grandparent of this file's directory.
    """
    if env_home := os.getenv("RANKCORD_HOME"):
        return Path(env_home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[2]


BASE_DIR = resolve_base_dir()
os.chdir(BASE_DIR)

import asyncio
import discord
from dotenv import load_dotenv

from rankcord.configuration.app_configuration import app_config
from rankcord.configuration.leveling_settings import LevelingSettings
from rankcord.leveling.progress_store import ProgressStore
from rankcord.leveling.role_sync import RoleSynchronizer
from rankcord.leveling.xp_engine import LevelingEngine
from rankcord.util.logger import get_logger, handle_exception


logger = get_logger("main")


def load_environment() -> str:
    """Load environment variables and return the Discord bot token.

    Raises
    ------
    SystemExit
        If the required ``DISCORD_BOT_TOKEN`` variable is missing.
    """
    load_dotenv(dotenv_path=BASE_DIR / ".env")
    token = os.getenv("DISCORD_BOT_TOKEN")
    if not token:
        logger.critical("'DISCORD_BOT_TOKEN' environment variable not set. Bot cannot start.")
        sys.exit(1)
    return token


def build_intents() -> discord.Intents:
    """Intents for guild, member and message events, including message content."""
    intents = discord.Intents.default()
    intents.message_content = True
    intents.guilds = True
    intents.messages = True
    intents.members = True
    return intents


def build_store(settings: LevelingSettings) -> ProgressStore:
    """Create the progress store and load it from disk.

    A missing or unreadable file leaves the store empty; the bot still starts.
    """
    store = ProgressStore(settings.levels_file)
    if not store.load():
        logger.error("Progress file %s could not be read; starting with empty progress", settings.levels_file)
    return store


def build_engine(store: ProgressStore, settings: LevelingSettings) -> LevelingEngine:
    return LevelingEngine(
        store,
        cooldown_ms=settings.cooldown_ms,
        xp_min=settings.xp_min,
        xp_max=settings.xp_max,
    )


def load_cogs(
    discord_bot_instance: discord.Bot,
    engine: LevelingEngine,
    role_synchronizer: RoleSynchronizer,
    settings: LevelingSettings,
) -> None:
    """Register the leveling cogs with the provided Discord bot instance."""
    from rankcord.bot.cogs import leveling_cmds, leveling_listener

    leveling_listener.setup(
        discord_bot_instance,
        engine,
        role_synchronizer,
        levelup_channel_id=settings.levelup_channel_id,
    )
    leveling_cmds.setup(discord_bot_instance, engine, leaderboard_size=settings.leaderboard_size)

    logger.info("All cogs loaded successfully.")


def create_bot(engine: LevelingEngine, settings: LevelingSettings) -> discord.Bot:
    """Instantiate the Discord bot and register all cogs."""
    bot = discord.Bot(intents=build_intents())
    load_cogs(bot, engine, RoleSynchronizer(reason=settings.role_reason), settings)

    @bot.event
    async def on_ready():
        logger.info("Logged in as %s, serving %d guild(s)", bot.user, len(bot.guilds))

    return bot


async def start_bot(bot: discord.Bot, token: str) -> None:
    """Start the Discord bot and log around the connection lifecycle."""
    logger.info("Attempting to connect to Discord…")
    try:
        await bot.start(token)
    except asyncio.CancelledError:
        logger.info("Discord bot start cancelled; shutting down")
    finally:
        logger.info("Discord bot start routine finished.")


async def shutdown_runtime(bot: discord.Bot | None, store: ProgressStore) -> None:
    """Close the Discord connection and flush leveling progress to disk."""
    if bot is not None and not bot.is_closed():
        try:
            await bot.close()
        except Exception as exc:
            logger.exception("Error while closing the Discord client: %s", exc)

    if not store.save():
        logger.error("Final progress save failed; progress since the last successful save is lost.")

    logger.info("Shutdown complete.")


async def async_main() -> int:
    """Bootstrap the store, engine and bot, returning an exit code."""
    token = load_environment()
    settings = app_config.leveling

    logger.info("Loading leveling progress from %s…", settings.levels_file)
    store = build_store(settings)

    try:
        engine = build_engine(store, settings)
        bot = create_bot(engine, settings)
    except Exception as exc:
        logger.critical("Failed to initialize Discord bot: %s", exc)
        return 1

    exit_code = 0
    try:
        await start_bot(bot, token)
    except discord.LoginFailure as exc:
        logger.critical("Discord rejected the bot token: %s", exc)
        exit_code = 1
    except Exception as exc:
        logger.critical("Discord bot runtime error: %s", exc)
        exit_code = 1
    finally:
        await shutdown_runtime(bot, store)

    return exit_code


def main() -> int:
    """Entrypoint that runs the async runtime and returns the process exit code."""
    logger.info("Starting Rankcord…")
    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user.")
        return 0
    except SystemExit as exit_exc:
        code = exit_exc.code
        if isinstance(code, int):
            return code
        return 1
    except Exception as exc:
        logger.critical("An unexpected error occurred while running the bot: %s", exc)
        return 1


if __name__ == "__main__":
    sys.excepthook = handle_exception
    sys.exit(main())
