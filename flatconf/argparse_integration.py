"""
flatconf.argparse_integration
-----------------------------
Optional helper if you want a quick argparse → Config integration.

Functions:
  - build_arg_parser()
  - load_config_from_args(...)
"""

import argparse

from .loader import Config
from .sources import EnvSource, FileSource, MapSource, parse_overrides


def build_arg_parser():
    parser = argparse.ArgumentParser(description="Argparse helper for flatconf")
    parser.add_argument('--config', action='append', default=[],
                        help="Path to a JSON, YAML or TOML config file (repeatable)")
    parser.add_argument('--env-prefix', help="Env-var prefix for overrides")
    parser.add_argument('--set', dest='overrides', action='append', default=[],
                        metavar='KEY=VALUE', help="Dot-key override, VALUE parsed as JSON if possible")
    return parser


def load_config_from_args(defaults=None, mandatory=None, argv=None):
    """
    Parse known args and return a Config.

    Layers, lowest first: ``defaults`` (a mapping), --config files,
    environment variables under --env-prefix, --set overrides.
    """
    parser = build_arg_parser()
    args, _ = parser.parse_known_args(argv)

    try:
        overrides = parse_overrides(args.overrides)
    except ValueError as e:
        parser.error(f"--set {e}")

    sources = []
    if defaults:
        sources.append(MapSource(defaults, label="defaults"))
    sources += [FileSource(path) for path in args.config]
    if args.env_prefix:
        sources.append(EnvSource(prefix=args.env_prefix))
    if overrides:
        sources.append(MapSource(overrides))

    cfg = Config(*sources)
    if mandatory:
        cfg.require(mandatory)
    return cfg
