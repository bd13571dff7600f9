import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Confirm
from rich.table import Table

from shorty import __version__
from shorty import search as search_engine
from shorty.categories import UNCATEGORIZED
from shorty.config import LOG_LEVELS
from shorty.context import HOME_ENV, ShortyContext
from shorty.errors import MalformedError, ShortyError
from shorty.models import Alias
from shorty.parameters import ParameterParser
from shorty.porter import EXPORT_FORMATS, IMPORT_FORMATS, format_for
from shorty.storage import ReplacePolicy
from shorty.validator import Severity

console = Console()

pass_shorty = click.make_pass_decorator(ShortyContext)

SEVERITY_STYLES = {
    Severity.INFO: "[blue]ℹ[/]",
    Severity.WARNING: "[yellow]⚠[/]",
    Severity.ERROR: "[red]✗[/]",
}


def configure_logging(level: str) -> None:
    """Send shorty's log records to stderr through rich"""
    package_logger = logging.getLogger("shorty")
    for handler in list(package_logger.handlers):
        if isinstance(handler, RichHandler):
            package_logger.removeHandler(handler)
    package_logger.addHandler(
        RichHandler(console=Console(stderr=True), show_time=False, show_path=False)
    )
    package_logger.setLevel(level)


def split_tags(tags):
    if tags is None:
        return None
    return [tag.strip() for tag in tags.split(",") if tag.strip()]


def truncate(text: str, limit: int) -> str:
    if limit and len(text) > limit:
        return text[: max(limit - 3, 1)] + "..."
    return text


class ShortyGroup(click.Group):
    """Group that reports shorty errors as a red cross and exit status 1"""

    def invoke(self, ctx):
        try:
            return super().invoke(ctx)
        except ShortyError as e:
            console.print(f"[red]✗[/] {escape(str(e))}")
            ctx.exit(1)


ShortyGroup.group_class = ShortyGroup


@click.group(cls=ShortyGroup)
@click.option(
    "--home",
    type=click.Path(file_okay=False, path_type=Path),
    envvar=HOME_ENV,
    help="Directory holding aliases, backups and settings (default ~/.shorty)",
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.version_option(version=__version__, prog_name="shorty")
@click.pass_context
def main(ctx, home, verbose):
    """shorty - manage your shell aliases from one sourced file"""
    if ctx.obj is None:
        ctx.obj = ShortyContext(home=home)
    level = "DEBUG" if verbose else str(ctx.obj.config.get("logging.level", "WARNING")).upper()
    if level not in LOG_LEVELS:
        level = "WARNING"
    configure_logging(level)


def render_alias_table(shorty: ShortyContext, aliases, title: str) -> Table:
    theme = shorty.config.get_theme()
    show_notes = shorty.config.get("display.show_notes", True)
    limit = shorty.config.get("display.max_command_length", 50)

    table = Table(title=title, border_style=theme["border_color"])
    table.add_column("Name", style=theme["header_color"], no_wrap=True)
    table.add_column("Command", style=theme["success_color"])
    if show_notes:
        table.add_column("Note", style="dim")
    table.add_column("Tags", style="yellow")
    table.add_column("Category", style="magenta")

    for alias in aliases:
        row = [escape(alias.name), escape(truncate(alias.command, limit))]
        if show_notes:
            row.append(escape(alias.note or ""))
        row.append(escape(", ".join(alias.tags)) if alias.tags else "—")
        row.append(escape(shorty.categories.effective_category(alias)))
        table.add_row(*row)
    return table


def report_findings(findings) -> None:
    for finding in findings:
        console.print(f"{SEVERITY_STYLES[finding.severity]} [cyan]{escape(finding.alias_name)}[/]: {escape(finding.message)}")
        if finding.suggestion:
            console.print(f"   [dim]{escape(finding.suggestion)}[/]")


@main.command()
@click.argument("name")
@click.argument("command", nargs=-1, required=True)
@click.option("--note", "-n", help="Note describing the alias")
@click.option("--tags", "-t", help="Comma-separated tags for the alias")
@click.option("--category", "-c", help="Category for the alias")
@click.option("--force", "-f", is_flag=True, help="Replace an existing alias with the same name")
@pass_shorty
def add(shorty, name, command, note, tags, category, force):
    """Add a new alias to your collection"""
    if category:
        shorty.categories.get(category)
    alias = Alias(
        name=name,
        command=" ".join(command),
        note=note,
        tags=split_tags(tags) or [],
        category=category,
    )
    shorty.storage.add(alias, ReplacePolicy.REPLACE if force else ReplacePolicy.REJECT)
    console.print(f"[green]✔[/] Added alias: [cyan]{escape(alias.name)}[/] = '{escape(alias.command)}'")

    if shorty.config.get("aliases.validate_on_add", True):
        report_findings(shorty.validator.check_alias(alias, shorty.storage.aliases.keys()))


@main.command()
@click.argument("name")
@click.option("--command", "-c", help="New command")
@click.option("--note", "-n", help="New note (empty string clears it)")
@click.option("--tags", "-t", help="New comma-separated tags (empty string clears them)")
@click.option("--category", help="New category (empty string clears it)")
@pass_shorty
def edit(shorty, name, command, note, tags, category):
    """Edit an existing alias"""
    if command is None and note is None and tags is None and category is None:
        raise MalformedError("No changes specified. Use --command, --note, --tags or --category")
    if category:
        shorty.categories.get(category)

    alias = shorty.storage.edit(name, command=command, note=note, tags=split_tags(tags), category=category)
    console.print(f"[green]✔[/] Updated alias: [cyan]{escape(alias.name)}[/] = '{escape(alias.command)}'")


@main.command()
@click.argument("names", nargs=-1, required=True)
@pass_shorty
def remove(shorty, names):
    """Remove one or more aliases"""
    for name in names:
        shorty.storage.remove(name)
        console.print(f"[green]✔[/] Removed alias: [cyan]{escape(name)}[/]")


@main.command(name="list")
@click.option("--tag", "-t", "tags", multiple=True, help="Only aliases with this tag (repeatable)")
@click.option("--category", "-c", help="Only aliases in this category")
@click.option(
    "--sort", "sort_key",
    type=click.Choice([key.value for key in search_engine.SortKey]),
    default=search_engine.SortKey.NONE.value,
    help="Display order",
)
@click.option("--plain", is_flag=True, help="Print alias lines instead of a table")
@pass_shorty
def list_aliases(shorty, tags, category, sort_key, plain):
    """List aliases"""
    aliases = search_engine.filter_aliases(shorty.storage.list_all(), tags, category)
    aliases = search_engine.sort_aliases(aliases, search_engine.SortKey(sort_key))

    if not aliases:
        console.print("[yellow]No aliases found.[/] Add one with 'shorty add'")
        return

    if plain:
        for alias in aliases:
            click.echo(str(alias))
        return

    console.print(render_alias_table(shorty, aliases, f"📋 Your Aliases ({len(aliases)} total)"))


@main.command()
@click.argument("keyword")
@click.option(
    "--scope", "-s",
    type=click.Choice([scope.value for scope in search_engine.FieldScope]),
    default=search_engine.FieldScope.ANY.value,
    help="Which field to search",
)
@click.option("--regex", "-r", is_flag=True, help="Treat KEYWORD as a regular expression")
@click.option("--case-sensitive", is_flag=True, help="Match case exactly")
@click.option("--fuzzy", is_flag=True, help="Fuzzy matching")
@click.option("--threshold", type=click.IntRange(0, 100), help="Fuzzy match threshold (0-100)")
@click.option("--tag", "-t", "tags", multiple=True, help="Only aliases with this tag (repeatable)")
@click.option("--category", "-c", help="Only aliases in this category")
@pass_shorty
def search(shorty, keyword, scope, regex, case_sensitive, fuzzy, threshold, tags, category):
    """Search aliases by name, command, note or tag"""
    config = shorty.config
    results = search_engine.search(
        shorty.storage.list_all(),
        keyword,
        scope=search_engine.FieldScope(scope),
        use_regex=regex,
        case_sensitive=case_sensitive or config.get("search.case_sensitive", False),
        tags=tags,
        category=category,
        fuzzy=fuzzy or config.get("search.fuzzy_matching", False),
        threshold=config.get("search.fuzzy_threshold") if threshold is None else threshold,
    )

    if not results:
        console.print(f"[yellow]No aliases match '{escape(keyword)}'[/]")
        return

    console.print(render_alias_table(shorty, results, f"🔍 Search results for '{escape(keyword)}' ({len(results)})"))


@main.command()
@click.option("--remove", "remove_them", is_flag=True, help="Delete all but the first alias of each group")
@pass_shorty
def duplicates(shorty, remove_them):
    """Find aliases that run the same command"""
    groups = shorty.storage.find_duplicates()
    if not groups:
        console.print("[green]✔[/] No duplicate commands found")
        return

    for group in groups:
        names = ", ".join(escape(alias.name) for alias in group)
        console.print(f"[yellow]⚠[/] [dim]{escape(group[0].command)}[/] → {names}")

    if remove_them:
        removed = shorty.storage.remove_duplicates()
        console.print(f"[green]✔[/] Removed {len(removed)} duplicate aliases")


@main.command()
@click.option("--fix", is_flag=True, help="Apply the safe automatic fixes")
@pass_shorty
def validate(shorty, fix):
    """Check aliases for missing commands, duplicates and risky patterns"""
    for warning in shorty.storage.warnings:
        console.print(f"[yellow]⚠[/] {escape(str(warning))}")

    findings = shorty.validator.validate(shorty.storage.list_all())
    if not findings:
        console.print(f"[green]✔[/] All {len(shorty.storage.aliases)} aliases look good")
        return

    report_findings(findings)
    errors = len([f for f in findings if f.severity is Severity.ERROR])
    console.print(f"\n[bold]{len(findings)} issues[/] ({errors} errors)")

    if fix:
        fixed = shorty.validator.fix(shorty.storage, findings)
        console.print(f"[green]✔[/] Fixed {fixed} issues")
    elif any(f.fixable for f in findings):
        console.print("[dim]Run 'shorty validate --fix' to apply automatic fixes[/]")


@main.command()
@pass_shorty
def stats(shorty):
    """Show statistics about your aliases"""
    figures = shorty.storage.get_statistics()
    if not figures["total_aliases"]:
        console.print("[yellow]No aliases yet![/] Start with 'shorty add'")
        return

    tag_stats = shorty.porter.get_tag_statistics()
    top_tags = ", ".join(f"{escape(t)} ({c})" for t, c in list(tag_stats["tag_counts"].items())[:5]) or "—"
    top_commands = ", ".join(f"{escape(c)} ({n})" for c, n in figures["top_commands"]) or "—"

    stats_text = f"""[bold cyan]📊 Alias Statistics[/]

[yellow]Total Aliases:[/] {figures['total_aliases']}
[yellow]With Notes:[/] {figures['with_notes']}
[yellow]With Tags:[/] {figures['with_tags']}
[yellow]Categorized:[/] {figures['with_category']}
[yellow]Unique Tags:[/] {figures['unique_tags']}
[yellow]Characters Saved:[/] ~{figures['keystrokes_saved']:,} keystrokes
[yellow]Average Command Length:[/] {figures['average_command_length']:.1f} chars
[yellow]Duplicate Groups:[/] {figures['duplicate_groups']}
[yellow]Top Commands:[/] {top_commands}
[yellow]Top Tags:[/] {top_tags}
[yellow]Storage:[/] {escape(str(shorty.storage.storage_path))} ({figures['file_size']} bytes)
[yellow]Backups:[/] {len(shorty.backups.list_backups())}"""

    console.print(Panel.fit(stats_text, border_style=shorty.config.get_theme()["border_color"]))
    if figures["unparsed_lines"]:
        console.print(f"[yellow]⚠[/] {figures['unparsed_lines']} lines could not be parsed")


@main.command(name="export")
@click.option("--format", "-f", "fmt", type=click.Choice(EXPORT_FORMATS), help="Output format (default: from file suffix, else json)")
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), help="Write to file instead of stdout")
@click.option("--tag", "-t", help="Only export aliases with this tag")
@pass_shorty
def export_aliases(shorty, fmt, output, tag):
    """Export aliases as JSON, CSV, YAML or a shell script"""
    if output is None:
        aliases = shorty.storage.list_all(tags=[tag] if tag else None)
        click.echo(shorty.porter.render(aliases, fmt or "json"), nl=False)
        return

    success, message = shorty.porter.export_to_file(output, fmt or format_for(output, None), tag)
    if not success:
        raise MalformedError(message)
    console.print(f"[green]✔[/] {escape(message)}")


@main.command(name="import")
@click.argument("source")
@click.option("--format", "-f", "fmt", type=click.Choice(IMPORT_FORMATS), help="Input format (default: from file suffix)")
@click.option("--merge", is_flag=True, help="Overwrite aliases that already exist")
@click.option("--dry-run", is_flag=True, help="Show what would be imported without saving")
@pass_shorty
def import_aliases(shorty, source, fmt, merge, dry_run):
    """Import aliases from a file, or from the rc files of bash, zsh or fish"""
    aliases = shorty.porter.read_source(source, fmt)
    report = shorty.porter.import_aliases(aliases, merge=merge, dry_run=dry_run)

    if dry_run:
        for name in report.added:
            console.print(f"  [green]+[/] {escape(name)}")
        for name in report.replaced:
            console.print(f"  [yellow]~[/] {escape(name)}")
        for name in report.skipped:
            console.print(f"  [dim]= {escape(name)} (exists)[/]")
    console.print(f"[green]✔[/] {escape(report.summary())}")


@main.group()
def backup():
    """Manage backups of the alias file"""


@backup.command(name="create")
@click.option("--name", "-n", help="Label for the backup")
@pass_shorty
def backup_create(shorty, name):
    """Snapshot the alias file now"""
    snapshot = shorty.backups.create_backup(shorty.aliases_path, name=name)
    console.print(f"[green]✔[/] Backup created: [cyan]{escape(snapshot.id)}[/]")


@backup.command(name="list")
@pass_shorty
def backup_list(shorty):
    """List backups, newest first"""
    snapshots = shorty.backups.list_backups()
    if not snapshots:
        console.print("[yellow]No backups found[/]")
        return

    table = Table(title=f"💾 Backups ({len(snapshots)} total)")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Created", style="green")
    table.add_column("Name", style="yellow")
    table.add_column("Size", justify="right")
    for snapshot in snapshots:
        table.add_row(
            escape(snapshot.id),
            snapshot.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            escape(snapshot.name or "—"),
            f"{snapshot.size} B",
        )
    console.print(table)


@backup.command(name="restore")
@click.argument("backup_id", default="latest")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@pass_shorty
def backup_restore(shorty, backup_id, yes):
    """Replace the alias file with a backup (default: latest)"""
    snapshot = shorty.backups.get(backup_id)
    if not yes and not Confirm.ask(f"Restore aliases from {snapshot.id}?"):
        console.print("[yellow]Cancelled[/]")
        return
    shorty.backups.restore(snapshot.id, shorty.aliases_path)
    console.print(f"[green]✔[/] Restored aliases from [cyan]{escape(snapshot.id)}[/]")


@backup.command(name="clean")
@click.option("--days", "-d", type=click.IntRange(min=0), default=30, show_default=True, help="Delete backups older than this")
@pass_shorty
def backup_clean(shorty, days):
    """Delete old backups, always keeping the newest"""
    removed = shorty.backups.clean(days)
    console.print(f"[green]✔[/] Removed {removed} backups older than {days} days")


@backup.command(name="remove")
@click.argument("backup_id")
@pass_shorty
def backup_remove(shorty, backup_id):
    """Delete one backup"""
    snapshot = shorty.backups.remove(backup_id)
    console.print(f"[green]✔[/] Removed backup [cyan]{escape(snapshot.id)}[/]")


@main.group()
def category():
    """Organise aliases into categories"""


@category.command(name="add")
@click.argument("name")
@click.option("--description", "-d", help="What the category holds")
@click.option("--parent", "-p", help="Parent category")
@click.option("--color", help="Display color")
@click.option("--icon", help="Display icon")
@pass_shorty
def category_add(shorty, name, description, parent, color, icon):
    """Create a category"""
    shorty.categories.add(name, description=description, parent=parent, color=color, icon=icon)
    console.print(f"[green]✔[/] Created category [cyan]{escape(name)}[/]")


@category.command(name="list")
@pass_shorty
def category_list(shorty):
    """Show the category tree with alias counts"""
    registry = shorty.categories
    counts = {}
    for alias in shorty.storage.list_all():
        key = registry.effective_category(alias)
        counts[key] = counts.get(key, 0) + 1

    entries = registry.tree()
    if not entries:
        console.print("[yellow]No categories found[/]")
        return
    for depth, cat in entries:
        icon = f"{cat.icon} " if cat.icon else ""
        description = f" [dim]- {escape(cat.description)}[/]" if cat.description else ""
        console.print(f"{'  ' * depth}{icon}[cyan]{escape(cat.name)}[/] ({counts.get(cat.name, 0)}){description}")
    if counts.get(UNCATEGORIZED):
        console.print(f"[dim]{UNCATEGORIZED} ({counts[UNCATEGORIZED]})[/]")


@category.command(name="show")
@click.argument("name")
@pass_shorty
def category_show(shorty, name):
    """Show a category and its aliases"""
    cat = shorty.categories.get(name)
    console.print(f"[bold cyan]{escape(cat.name)}[/] {cat.icon or ''}")
    if cat.description:
        console.print(f"[dim]{escape(cat.description)}[/]")
    ancestors = shorty.categories.ancestors(name)
    if ancestors:
        console.print(f"Path: {escape(' / '.join(reversed([name] + ancestors)))}")
    children = shorty.categories.children(name)
    if children:
        console.print(f"Subcategories: {escape(', '.join(c.name for c in children))}")

    members = shorty.storage.list_all(category=name)
    if members:
        console.print(render_alias_table(shorty, members, f"Aliases in {escape(name)} ({len(members)})"))
    else:
        console.print("[yellow]No aliases in this category[/]")


@category.command(name="remove")
@click.argument("name")
@click.option("--force", is_flag=True, help="Remove even if it has subcategories or aliases")
@pass_shorty
def category_remove(shorty, name, force):
    """Delete a category"""
    moved, freed = shorty.categories.remove(name, shorty.storage, force=force)
    console.print(f"[green]✔[/] Removed category [cyan]{escape(name)}[/]")
    if moved:
        console.print(f"[dim]Moved subcategories: {escape(', '.join(moved))}[/]")
    if freed:
        console.print(f"[dim]{freed} aliases are now {UNCATEGORIZED}[/]")


@category.command(name="move")
@click.argument("alias_name")
@click.argument("category_name")
@pass_shorty
def category_move(shorty, alias_name, category_name):
    """Put an alias into a category"""
    shorty.categories.move_alias(shorty.storage, alias_name, category_name)
    console.print(f"[green]✔[/] Moved [cyan]{escape(alias_name)}[/] to [cyan]{escape(category_name)}[/]")


@category.command(name="parent")
@click.argument("name")
@click.argument("parent", required=False)
@pass_shorty
def category_parent(shorty, name, parent):
    """Set or clear the parent of a category"""
    shorty.categories.set_parent(name, parent)
    target = escape(parent) if parent else "root level"
    console.print(f"[green]✔[/] [cyan]{escape(name)}[/] now sits under {target}")


@category.command(name="group")
@pass_shorty
def category_group(shorty):
    """List aliases grouped by category"""
    groups = shorty.categories.group_aliases(shorty.storage.list_all())
    if not groups:
        console.print("[yellow]No aliases found.[/] Add one with 'shorty add'")
        return
    for name, members in groups.items():
        console.print(render_alias_table(shorty, members, f"{escape(name)} ({len(members)})"))


@category.command(name="suggest")
@pass_shorty
def category_suggest(shorty):
    """Suggest categories for uncategorized aliases"""
    suggestions = shorty.categories.suggest_categories(shorty.storage.list_all())
    if not suggestions:
        console.print("[green]✔[/] Nothing to suggest")
        return
    for name, count in suggestions:
        exists = "" if shorty.categories.resolve(name) is None else " [dim](exists)[/]"
        console.print(f"  [cyan]{escape(name)}[/]: {count} aliases{exists}")


@main.group()
def tag():
    """Manage alias tags"""


@tag.command(name="list")
@pass_shorty
def tag_list(shorty):
    """List all tags and their usage"""
    aliases = shorty.storage.list_all()
    tag_counts = shorty.porter.get_tag_statistics()["tag_counts"]
    if not tag_counts:
        console.print("[yellow]No tags found[/]")
        return

    console.print(f"[bold cyan]📋 Tags ({len(tag_counts)} total)[/]")
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Tag", style="cyan")
    table.add_column("Count", style="yellow")
    table.add_column("Aliases", style="white")

    for name in sorted(tag_counts):
        tagged = [a.name for a in aliases if name in a.tags]
        aliases_str = ", ".join(tagged[:5])
        if len(tagged) > 5:
            aliases_str += f" ... (+{len(tagged) - 5} more)"
        table.add_row(escape(name), str(tag_counts[name]), escape(aliases_str))
    console.print(table)


@tag.command(name="add")
@click.argument("alias_name")
@click.argument("tags", nargs=-1, required=True)
@pass_shorty
def tag_add(shorty, alias_name, tags):
    """Add tags to an alias"""
    added = shorty.storage.add_tags(alias_name, tags)
    if added:
        console.print(f"[green]✔[/] Added {len(added)} tag(s) to '{escape(alias_name)}'")
    else:
        console.print(f"[yellow]⚠[/] All specified tags already exist for '{escape(alias_name)}'")


@tag.command(name="remove")
@click.argument("alias_name")
@click.argument("tags", nargs=-1, required=True)
@pass_shorty
def tag_remove(shorty, alias_name, tags):
    """Remove tags from an alias"""
    removed = shorty.storage.remove_tags(alias_name, tags)
    if removed:
        console.print(f"[green]✔[/] Removed {len(removed)} tag(s) from '{escape(alias_name)}'")
    else:
        console.print(f"[yellow]⚠[/] None of the specified tags are on '{escape(alias_name)}'")


@tag.command(name="rename")
@click.argument("old_tag")
@click.argument("new_tag")
@pass_shorty
def tag_rename(shorty, old_tag, new_tag):
    """Rename a tag on every alias"""
    count = shorty.storage.rename_tag(old_tag, new_tag)
    if not count:
        console.print(f"[yellow]No aliases found with tag '{escape(old_tag)}'[/]")
        return
    console.print(f"[green]✔[/] Renamed tag '{escape(old_tag)}' to '{escape(new_tag)}' in {count} aliases")


@tag.command(name="delete")
@click.argument("tag_name")
@pass_shorty
def tag_delete(shorty, tag_name):
    """Remove a tag from every alias"""
    count = shorty.storage.delete_tag(tag_name)
    if not count:
        console.print(f"[yellow]No aliases found with tag '{escape(tag_name)}'[/]")
        return
    console.print(f"[green]✔[/] Deleted tag '{escape(tag_name)}' from {count} aliases")


@main.group()
def template():
    """Create aliases from reusable command patterns"""


@template.command(name="list")
@click.option("--category", "-c", help="Only templates in this category")
@pass_shorty
def template_list(shorty, category):
    """List available templates"""
    templates = shorty.templates.list_templates(category)
    if not templates:
        console.print("[yellow]No templates found[/]")
        return

    table = Table(title=f"🧩 Templates ({len(templates)})")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Category", style="magenta")
    table.add_column("Pattern", style="green")
    table.add_column("Used", justify="right")
    table.add_column("Source", style="dim")
    for tpl in templates:
        table.add_row(
            escape(tpl.name),
            escape(tpl.category),
            escape(tpl.pattern),
            str(tpl.usage_count),
            "builtin" if tpl.builtin else "user",
        )
    console.print(table)
    console.print("[dim]💡 Use 'shorty template use <name> -p key=value' to create an alias[/]")


@template.command(name="show")
@click.argument("name")
@pass_shorty
def template_show(shorty, name):
    """Show a template's pattern and parameters"""
    tpl = shorty.templates.get_template(name)
    console.print(f"[bold cyan]{escape(tpl.name)}[/] [dim]({escape(tpl.category)}, used {tpl.usage_count}x)[/]")
    console.print(escape(tpl.description))
    console.print(f"\nPattern:\n  [green]{escape(tpl.pattern)}[/]")

    if tpl.parameters:
        console.print("\nParameters:")
        for param in tpl.parameters:
            kind = "required" if param.required else "optional"
            console.print(f"  • [cyan]{escape(param.name)}[/] ({kind}) {escape(param.description)}")
            if param.default is not None:
                console.print(f"    Default: {escape(param.default)}")
            if param.validation_pattern:
                console.print(f"    Pattern: {escape(param.validation_pattern)}")

    defaults = {p.name: p.default for p in tpl.parameters}
    console.print("\nUsage example:")
    console.print(f"  {escape(ParameterParser.generate_usage_example(tpl.name, tpl.pattern, defaults))}")


@template.command(name="add")
@click.argument("name")
@click.argument("pattern")
@click.option("--description", "-d", help="What the template does")
@click.option("--category", "-c", help="Template category")
@pass_shorty
def template_add(shorty, name, pattern, description, category):
    """Add a template; {placeholders} in PATTERN become parameters"""
    tpl = shorty.templates.add_template(name, pattern, description, category)
    console.print(f"[green]✔[/] Template '{escape(name)}' added")
    if tpl.parameters:
        console.print(f"[dim]Parameters: {escape(', '.join(p.name for p in tpl.parameters))}[/]")


@template.command(name="update")
@click.argument("name")
@click.option("--pattern", help="New pattern")
@click.option("--description", "-d", help="New description")
@click.option("--category", "-c", help="New category")
@pass_shorty
def template_update(shorty, name, pattern, description, category):
    """Change a template"""
    changes = shorty.templates.update_template(name, pattern, description, category)
    if not changes:
        console.print("[yellow]No changes specified.[/] Use --pattern, --description or --category")
        return
    console.print(f"[green]✔[/] Template '{escape(name)}' updated ({', '.join(changes)})")


@template.command(name="remove")
@click.argument("name")
@pass_shorty
def template_remove(shorty, name):
    """Remove a user template"""
    shorty.templates.remove_template(name)
    console.print(f"[green]✔[/] Template '{escape(name)}' removed")


@template.command(name="use")
@click.argument("name")
@click.option("--param", "-p", "params", multiple=True, help="Parameter as key=value (repeatable)")
@click.option("--alias-name", "-a", help="Name of the alias to create")
@click.option("--force", "-f", is_flag=True, help="Replace an existing alias with the same name")
@pass_shorty
def template_use(shorty, name, params, alias_name, force):
    """Create an alias from a template"""
    values = ParameterParser.parse_assignments(list(params))
    alias = shorty.templates.use_template(name, values, shorty.storage, alias_name=alias_name, replace=force)
    console.print(f"[green]✔[/] Alias '[cyan]{escape(alias.name)}[/]' created from template '{escape(name)}'")
    console.print(f"[dim]Command: {escape(alias.command)}[/]")


@main.group(name="config")
def config_group():
    """View and change settings"""


@config_group.command(name="get")
@click.argument("key")
@pass_shorty
def config_get(shorty, key):
    """Print one setting"""
    click.echo(shorty.config.value_of(key))


@config_group.command(name="set")
@click.argument("key")
@click.argument("value")
@pass_shorty
def config_set(shorty, key, value):
    """Change one setting"""
    stored = shorty.config.set(key, value)
    console.print(f"[green]✔[/] {escape(key)} = {escape(str(stored))}")


@config_group.command(name="list")
@pass_shorty
def config_list(shorty):
    """Show every setting"""
    table = Table(title="⚙️  Settings")
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="green")
    for key, value in shorty.config.items():
        table.add_row(key, escape(str(value)))
    console.print(table)


@config_group.command(name="reset")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@pass_shorty
def config_reset(shorty, yes):
    """Restore default settings"""
    if not yes and not Confirm.ask("Reset all settings to their defaults?"):
        console.print("[yellow]Cancelled[/]")
        return
    shorty.config.reset()
    console.print("[green]✔[/] Settings restored to defaults")


@main.command()
@click.option("--shell", "-s", type=click.Choice(["bash", "zsh", "fish", "sh"]), help="Target shell (auto-detect if not specified)")
@click.option("--force", is_flag=True, help="Rewrite the block if it is already installed")
@click.option("--uninstall", is_flag=True, help="Remove the block instead")
@pass_shorty
def install(shorty, shell, force, uninstall):
    """Source the alias file from your shell's startup file"""
    integrator = shorty.integrator
    shell_type = integrator.resolve_shell(shell)
    if uninstall:
        success, message = integrator.uninstall(shell_type)
    else:
        success, message = integrator.install(shell_type, force=force)

    if success:
        console.print(f"[green]✔[/] {escape(message)}")
        if not uninstall:
            target = integrator.get_target_file(shell_type)
            console.print(f"[dim]   For current session, run: source {escape(str(target))}[/]")
    else:
        console.print(f"[yellow]⚠[/] {escape(message)}")


@main.command()
@click.argument("shell", type=click.Choice(["bash", "zsh", "fish"]))
def completion(shell):
    """Print the shell completion script

    Examples:
      shorty completion bash >> ~/.bashrc
      shorty completion fish > ~/.config/fish/completions/shorty.fish
    """
    from click.shell_completion import get_completion_class

    completion_cls = get_completion_class(shell)
    if completion_cls is None:
        raise MalformedError(f"Unsupported shell: {shell}")
    script = completion_cls(main, {}, "shorty", "_SHORTY_COMPLETE").source()
    click.echo(script)


if __name__ == "__main__":
    main()
