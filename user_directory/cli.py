# ==============================================
# CLI — Command Line Entry Point
# ==============================================
#
# PURPOSE:
#   Provides a command-line interface over the record store.
#   Every command restores the persisted snapshot, loads the
#   pages it needs, does its work and exits through the final
#   flush, so favorites and tags carry over between runs.
#
# COMMANDS:
# ---------
#   user-directory fetch --pages 3
#   user-directory list --search jo --gender female --favorites
#   user-directory show USER_ID
#   user-directory favorite USER_ID
#   user-directory tag USER_ID TAG        (adds to vocabulary too)
#   user-directory untag USER_ID TAG
#   user-directory tags list|add|remove|rename
#   user-directory reset --confirm
#
#   Global options: --pages N (pages loaded before the command),
#                   --verbose (DEBUG logging)
#
# ==============================================

import asyncio
import sys

import click
from loguru import logger

from user_directory.app import DirectoryApp
from user_directory.config import get_config
from user_directory.persistence import create_persistence


def _default_app_factory() -> DirectoryApp:
    return DirectoryApp(register_atexit=False)


def _run(ctx: click.Context, action, pages=None):
    """Start an app, load `pages` pages, run `action(app)`, flush and close."""
    factory = ctx.obj["app_factory"]
    page_count = ctx.obj["pages"] if pages is None else pages

    async def runner():
        app = factory()
        async with app:
            await app.fetch_pages(page_count)
            if app.store.error:
                click.echo(f"✗ {app.store.error}", err=True)
                return False
            return action(app)

    ok = asyncio.run(runner())
    if ok is False:
        ctx.exit(1)


def _format_user(user) -> str:
    star = "★" if user.is_favorite else " "
    tags = ", ".join(user.tags)
    return f"{star} {user.id or '-':<14} {user.full_name:<28} {user.gender:<7} {tags}"


@click.group()
@click.option("--pages", "-p", type=click.IntRange(min=1), default=1, show_default=True,
              help="Pages to load before running the command")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, pages: int, verbose: bool):
    """Browse a remote user directory and keep local favorites and tags."""
    ctx.ensure_object(dict)
    ctx.obj.setdefault("app_factory", _default_app_factory)
    ctx.obj["pages"] = pages

    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


@cli.command()
@click.option("--pages", "count", type=click.IntRange(min=1), default=1, show_default=True,
              help="Number of pages to fetch")
@click.pass_context
def fetch(ctx: click.Context, count: int):
    """Fetch pages from the directory and save the snapshot."""
    def action(app):
        favorites = sum(1 for user in app.store.users if user.is_favorite)
        click.echo(f"✓ Loaded {len(app.store.users)} users "
                   f"({favorites} favorites, next page {app.store.page})")
        return True

    _run(ctx, action, pages=count)


@cli.command(name="list")
@click.option("--search", "-s", default=None, help="Case-insensitive name search")
@click.option("--gender", "-g", default=None, help="Exact gender match")
@click.option("--favorites", "favorites", is_flag=True, help="Only show favorites")
@click.option("--all", "show_all", is_flag=True, help="Show favorites and non-favorites")
@click.option("--clear", is_flag=True, help="Reset all filters first")
@click.pass_context
def list_users(ctx: click.Context, search, gender, favorites: bool, show_all: bool, clear: bool):
    """List users matching the current filters (remembered between runs)."""
    def action(app):
        store = app.store
        if clear:
            store.clear_filters()
        updates = {}
        if search is not None:
            updates["search_text"] = search
        if gender is not None:
            updates["gender"] = gender
        if favorites:
            updates["favorites_only"] = True
        elif show_all:
            updates["favorites_only"] = False
        store.set_filters(**updates)

        users = store.filtered_users
        for user in users:
            click.echo(_format_user(user))
        click.echo(f"{len(users)} of {len(store.users)} users")
        return True

    _run(ctx, action)


@cli.command()
@click.argument("user_id")
@click.pass_context
def show(ctx: click.Context, user_id: str):
    """Select a user and print their details."""
    def action(app):
        user = app.store.find_user(user_id)
        if user is None:
            click.echo(f"✗ No user with id {user_id}", err=True)
            return False
        app.store.set_selected_user(user)
        loc = user.location
        click.echo(f"{user.full_name} <{user.email}>")
        click.echo(f"  gender: {user.gender}  age: {user.age}  phone: {user.phone}")
        click.echo(f"  {loc.street}, {loc.postcode} {loc.city}, {loc.country}")
        click.echo(f"  favorite: {'yes' if user.is_favorite else 'no'}")
        click.echo(f"  tags: {', '.join(user.tags) or '-'}")
        return True

    _run(ctx, action)


@cli.command()
@click.argument("user_id")
@click.pass_context
def favorite(ctx: click.Context, user_id: str):
    """Toggle a user's favorite status."""
    def action(app):
        if not app.store.toggle_favorite(user_id):
            click.echo(f"✗ No user with id {user_id}", err=True)
            return False
        user = app.store.find_user(user_id)
        state = "added to" if user.is_favorite else "removed from"
        click.echo(f"✓ {user.full_name} {state} favorites")
        return True

    _run(ctx, action)


@cli.command()
@click.argument("user_id")
@click.argument("tag")
@click.pass_context
def tag(ctx: click.Context, user_id: str, tag: str):
    """Add TAG to a user (and to the vocabulary)."""
    def action(app):
        if app.store.find_user(user_id) is None:
            click.echo(f"✗ No user with id {user_id}", err=True)
            return False
        if app.store.add_tag_to_user(user_id, tag):
            click.echo(f"✓ Tagged {user_id} with '{tag}'")
        else:
            click.echo(f"⚠ {user_id} already has '{tag}'")
        return True

    _run(ctx, action)


@cli.command()
@click.argument("user_id")
@click.argument("tag")
@click.pass_context
def untag(ctx: click.Context, user_id: str, tag: str):
    """Remove TAG from a user (the vocabulary keeps it)."""
    def action(app):
        if app.store.remove_tag_from_user(user_id, tag):
            click.echo(f"✓ Removed '{tag}' from {user_id}")
        else:
            click.echo(f"⚠ {user_id} does not have '{tag}'")
        return True

    _run(ctx, action)


@cli.group()
def tags():
    """Manage the tag vocabulary."""


@tags.command(name="list")
@click.pass_context
def list_tags(ctx: click.Context):
    """Print the vocabulary with usage counts."""
    def action(app):
        store = app.store
        for name in store.all_tags:
            used_by = sum(1 for user in store.users if user.has_tag(name))
            click.echo(f"{name}\t{used_by}")
        if not store.all_tags:
            click.echo("No tags defined")
        return True

    _run(ctx, action)


@tags.command(name="add")
@click.argument("tag")
@click.pass_context
def add_tag(ctx: click.Context, tag: str):
    """Add TAG to the vocabulary."""
    def action(app):
        if app.store.add_tag(tag):
            click.echo(f"✓ Added tag '{tag}'")
        else:
            click.echo(f"⚠ Tag '{tag}' already exists")
        return True

    _run(ctx, action)


@tags.command(name="remove")
@click.argument("tag")
@click.pass_context
def remove_tag(ctx: click.Context, tag: str):
    """Remove TAG from the vocabulary and from every user."""
    def action(app):
        if not app.store.remove_tag(tag):
            click.echo(f"✗ Unknown tag '{tag}'", err=True)
            return False
        click.echo(f"✓ Removed tag '{tag}'")
        return True

    _run(ctx, action)


@tags.command(name="rename")
@click.argument("old_tag")
@click.argument("new_tag")
@click.pass_context
def rename_tag(ctx: click.Context, old_tag: str, new_tag: str):
    """Rename OLD_TAG to NEW_TAG everywhere."""
    def action(app):
        if not app.store.update_tag(old_tag, new_tag):
            click.echo(f"✗ Unknown tag '{old_tag}'", err=True)
            return False
        click.echo(f"✓ Renamed '{old_tag}' to '{new_tag}'")
        return True

    _run(ctx, action)


@cli.command()
@click.option("--confirm", is_flag=True, help="Required to actually delete the snapshot")
def reset(confirm: bool):
    """Delete the persisted snapshot (favorites, tags, filters)."""
    if not confirm:
        click.echo("⚠ Refusing to reset without --confirm", err=True)
        sys.exit(1)

    config = get_config()
    persistence = create_persistence(config)
    try:
        removed = persistence.delete(config.persistence.snapshot_key)
    finally:
        persistence.close()
    click.echo("✓ Snapshot deleted" if removed else "✓ Nothing to delete")


def main():
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
