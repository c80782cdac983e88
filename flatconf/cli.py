# flatconf/cli.py

import fnmatch
import json
import re

import click
import toml
import yaml

from .exceptions import ConfigError
from .keys import JOINER, split
from .loader import Config
from .sources import DotenvSource, EnvSource, FileSource, MapSource, parse_overrides


def _match(pattern: str, text: str, ignore_case: bool = False) -> bool:
    """
    Try glob first, then regex, then exact match.
      - Glob if pattern contains *, ?, [ or ]
      - Regex if pattern contains any of . + ^ $ ( ) { } | \
      - Exact otherwise
    Honors ignore_case by lowercasing both pattern & text.
    """
    if ignore_case:
        pattern = pattern.lower()
        text = text.lower()

    if any(c in pattern for c in "*?[]"):
        return fnmatch.fnmatch(text, pattern)

    if any(c in pattern for c in ".+^$(){}|\\"):
        flags = re.IGNORECASE if ignore_case else 0
        return re.search(pattern, text, flags) is not None

    return pattern == text


def _to_json(value) -> str:
    return json.dumps(value, indent=2, default=str)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("-f", "--file", "files", multiple=True, help="JSON/YAML/TOML file to load (repeatable, later wins)")
@click.option("--optional-file", "optional_files", multiple=True, help="Like --file, but skipped when missing")
@click.option("--dotenv", "dotenv_path", help=".env file to load")
@click.option("-e", "--env-prefix", help="Load environment variables under this prefix")
@click.option("-s", "--set", "overrides", multiple=True, help="KEY=VALUE override (VALUE parsed as JSON if possible)")
@click.option("--mandatory", help="Comma-sep list of mandatory dot-keys")
@click.pass_context
def cli(ctx, files, optional_files, dotenv_path, env_prefix, overrides, mandatory):
    """
    flatconf CLI: inspect layered configuration via dot-notation.

    Sources are applied in this order, later ones winning: files,
    optional files, the .env file, environment variables, --set overrides.
    Then run a subcommand:
      • get         KEY
      • exists      KEY
      • search      [--key PAT] [--val PAT] [-i]
      • dump        [--flat] [--prefix KEY]
      • convert     [--to json|yaml|toml] [--out FILE]
      • provenance  [KEY]
    """
    sources = [FileSource(path) for path in files]
    sources += [FileSource(path, required=False) for path in optional_files]
    if dotenv_path:
        sources.append(DotenvSource(dotenv_path))
    if env_prefix:
        sources.append(EnvSource(prefix=env_prefix))
    if overrides:
        try:
            sources.append(MapSource(parse_overrides(overrides)))
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="--set") from e

    try:
        cfg = Config(*sources, track_provenance=True)
        if mandatory:
            cfg.require(k.strip() for k in mandatory.split(","))
    except ConfigError as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        ctx.exit(1)

    ctx.obj = {"cfg": cfg}


@cli.command()
@click.argument("key")
@click.pass_context
def get(ctx, key):
    """Print the value of KEY (dot-notation) as JSON."""
    cfg = ctx.obj["cfg"]
    if key not in cfg:
        click.secho(f"Key not found: {key}", fg="yellow", err=True)
        ctx.exit(1)
    click.echo(_to_json(cfg.get(key)))


@cli.command()
@click.argument("key")
@click.pass_context
def exists(ctx, key):
    """Exit 0 if KEY exists in config, 1 otherwise."""
    if key in ctx.obj["cfg"]:
        click.echo("true")
        ctx.exit(0)
    click.echo("false")
    ctx.exit(1)


@cli.command()
@click.option("--key", "key_pat", help="Pattern for keys (regex/glob/plain)")
@click.option("--val", "val_pat", help="Pattern for values (regex/glob/plain)")
@click.option("-i", "--ignore-case", is_flag=True, help="Make key/value matching case-insensitive")
@click.pass_context
def search(ctx, key_pat, val_pat, ignore_case):
    """
    Search flat keys/values matching patterns.
    At least one of --key or --val must be provided.
    """
    if not (key_pat or val_pat):
        click.secho("Error: supply --key or --val", fg="red", err=True)
        ctx.exit(1)

    found = {}
    for k, v in ctx.obj["cfg"].to_flat_map().items():
        ks = _match(key_pat, k, ignore_case) if key_pat else True
        vs = _match(val_pat, str(v), ignore_case) if val_pat else True
        if ks and vs:
            found[k] = v

    if not found:
        click.echo("No matches")
        ctx.exit(1)

    click.echo(_to_json(found))


@cli.command()
@click.option("--flat", is_flag=True, help="Print dotted keys instead of nested objects")
@click.option("--prefix", help="Only keys under this dotted key")
@click.pass_context
def dump(ctx, flat, prefix):
    """Pretty-print the configuration as JSON."""
    cfg = ctx.obj["cfg"]
    try:
        if flat:
            data = cfg.to_flat_map()
            if prefix:
                head = JOINER.join(split(prefix))
                data = {k: v for k, v in data.items() if k == head or k.startswith(head + JOINER)}
        else:
            data = cfg.to_hierarchical_map(prefix=prefix)
    except ConfigError as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        ctx.exit(1)
    click.echo(_to_json(data))


@cli.command()
@click.option("--to", "fmt", type=click.Choice(["json", "yaml", "toml"]), default="json", help="Format to convert to")
@click.option("--out", "out_file", help="Write to file (instead of stdout)")
@click.pass_context
def convert(ctx, fmt, out_file):
    """
    Convert the merged configuration to JSON, YAML or TOML.
    """
    data = ctx.obj["cfg"].to_hierarchical_map()
    if fmt == "toml":
        text = toml.dumps(data)
    elif fmt == "yaml":
        text = yaml.safe_dump(data, sort_keys=False)
    else:
        text = _to_json(data)

    if out_file:
        with open(out_file, "w", encoding="utf-8") as f:
            f.write(text)
        click.secho(f"Wrote {fmt.upper()} to {out_file}", fg="green")
    else:
        click.echo(text)


@cli.command()
@click.argument("key", required=False)
@click.pass_context
def provenance(ctx, key):
    """Show which source set each key (or the full history of KEY)."""
    cfg = ctx.obj["cfg"]
    if key is None:
        for k, source in cfg.provenance_dump().items():
            click.echo(f"{k}  <- {source}")
        return
    history = cfg.provenance_history(key)
    if not history:
        click.secho(f"Key not found: {key}", fg="yellow", err=True)
        ctx.exit(1)
    for origin in history:
        click.echo(str(origin))
