#!/usr/bin/env python3
# buckreg/cli.py
"""
buckreg CLI - inspect the private patch registry

Commands:
- status            gate state, registry file and entry count
- list              registered packages and the fields they override
- show NAME         effective override for NAME (JSON)
- merge NAME        preview NAME's recipe after registry overrides (JSON)
- validate [PATH]   schema-check a registry file

Exit codes: 0 ok, 1 not found / invalid, 2 command failed.
"""

from __future__ import annotations

import sys
import json
import argparse
from pathlib import Path
from typing import Any, List, Optional

import toml
import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from buckreg import config as config_mod
from buckreg.config import Config, parse_structured
from buckreg.gate import KEY, SECTION, ConfigGate
from buckreg.logging import get_logger, reload_config as reload_logging
from buckreg.merge import merge
from buckreg.recipe import OVERRIDE_FIELDS, BuildRecipe
from buckreg.registry import OverrideRegistry, load_registry
from buckreg.resolver import OverrideResolver
from buckreg.schema import RegistryError, RegistrySchemaError

logger = get_logger("cli")

console = Console()
err_console = Console(stderr=True)

EXIT_OK = 0
EXIT_NOT_FOUND = 1
EXIT_FAILED = 2

# -----------------------
# Small pretty helpers
# -----------------------
def print_ok(msg: str):
    console.print(f"[bold green]✔[/] {escape(msg)}")

def print_warn(msg: str):
    err_console.print(f"[bold yellow]![/] {escape(msg)}")

def print_err(msg: str):
    err_console.print(f"[bold red]✖[/] {escape(msg)}")

def print_info(msg: str):
    console.print(f"[cyan]{escape(msg)}[/cyan]")

def print_json(data: Any):
    # plain print: output is meant for other tools
    print(json.dumps(data, indent=2, sort_keys=True, ensure_ascii=False))

# -----------------------
# CLI Implementation
# -----------------------
class BuckregCLI:
    def __init__(self, cfg: Config, registry_path: Optional[str] = None):
        self.config = cfg
        self.registry_path = Path(registry_path or cfg.get("registry.path"))
        self.gate = ConfigGate.from_config(cfg)
        self._registry: Optional[OverrideRegistry] = None

    @property
    def registry(self) -> OverrideRegistry:
        if self._registry is None:
            self._registry = load_registry(self.registry_path)
        return self._registry

    def resolver(self) -> OverrideResolver:
        return OverrideResolver(self.registry, self.gate)

    def status(self) -> int:
        state = "[bold green]active[/]" if self.gate.is_active() else "[bold red]disabled[/]"
        console.print(f"Registry: {state} ({SECTION}.{KEY}={escape(repr(self.gate.value))})")
        exists = self.registry_path.exists()
        console.print(f"File: {escape(str(self.registry_path))}" + ("" if exists else " (not present)"))
        console.print(f"Entries: {len(self.registry)}")
        return EXIT_OK

    def list_entries(self) -> int:
        registry = self.registry
        if not registry:
            print_info("No packages registered.")
            return EXIT_OK
        title = "Patch registry" if self.gate.is_active() else "Patch registry (disabled)"
        table = Table(title=title)
        table.add_column("Package", style="bold")
        for name in OVERRIDE_FIELDS:
            table.add_column(name)
        for pkg in sorted(registry):
            record = registry[pkg]
            cells = []
            for name in OVERRIDE_FIELDS:
                val = getattr(record, name)
                if val is None:
                    cells.append("")
                elif name in ("patches", "env"):
                    cells.append(str(len(val)))
                else:
                    cells.append("yes")
            table.add_row(pkg, *cells)
        console.print(table)
        if not self.gate.is_active():
            print_warn(f"{SECTION}.{KEY} is \"false\": none of these overrides apply")
        return EXIT_OK

    def show(self, name: str) -> int:
        record = self.resolver().resolve(name)
        if record is None:
            if not self.gate.is_active():
                print_warn(f"registry disabled; no override applies to {name}")
            else:
                print_warn(f"{name} is not registered")
            return EXIT_NOT_FOUND
        print_json(record.to_dict())
        return EXIT_OK

    def merge_recipe(self, name: str, recipe_path: Optional[str] = None) -> int:
        recipe = BuildRecipe()
        if recipe_path:
            p = Path(recipe_path)
            data = parse_structured(p.read_text(encoding="utf-8"), p.suffix)
            recipe = BuildRecipe.from_dict(data)
        merged = merge(recipe, self.resolver().resolve(name))
        print_json(merged.to_dict())
        return EXIT_OK

    def validate(self, path: Optional[str] = None) -> int:
        target = Path(path) if path else self.registry_path
        try:
            registry = load_registry(target, missing_ok=False)
        except RegistrySchemaError as e:
            print_err(f"{target}: {len(e.issues)} issue(s)")
            for issue in e.issues:
                err_console.print(f"  - {escape(issue)}")
            return EXIT_NOT_FOUND
        except RegistryError as e:
            print_err(str(e))
            return EXIT_NOT_FOUND
        print_ok(f"{target}: {len(registry)} entries OK")
        return EXIT_OK

# -----------------------
# Parser
# -----------------------
def make_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="buckreg", description="BuckOS private patch registry")
    ap.add_argument("-C", "--config", dest="config_path", help="explicit config file")
    ap.add_argument("-c", "--config-option", dest="config_options", action="append", default=[],
                    metavar="SECTION.KEY=VALUE", help="override a config value (repeatable)")
    ap.add_argument("--root", help="project root holding .buckconfig (default: cwd)")
    ap.add_argument("--registry", help="registry file (default: registry.path from config)")
    sub = ap.add_subparsers(dest="cmd")

    sub.add_parser("status", help="show whether the registry is active")
    sub.add_parser("list", help="list registered packages")

    p_show = sub.add_parser("show", help="print the effective override for a package")
    p_show.add_argument("name")

    p_merge = sub.add_parser("merge", help="preview a recipe with registry overrides applied")
    p_merge.add_argument("name")
    p_merge.add_argument("--recipe", help="recipe file (YAML/TOML/JSON); default is an empty recipe")

    p_validate = sub.add_parser("validate", help="validate a registry file")
    p_validate.add_argument("path", nargs="?")

    return ap

def main(argv: Optional[List[str]] = None) -> int:
    argv = argv if argv is not None else sys.argv[1:]
    parser = make_parser()
    args = parser.parse_args(argv)
    if not args.cmd:
        parser.print_help()
        return EXIT_FAILED

    try:
        cfg = config_mod.load(args.config_path, root=args.root, overrides=args.config_options)
        reload_logging()
        cli = BuckregCLI(cfg, registry_path=args.registry)
        if args.cmd == "status":
            return cli.status()
        if args.cmd == "list":
            return cli.list_entries()
        if args.cmd == "show":
            return cli.show(args.name)
        if args.cmd == "merge":
            return cli.merge_recipe(args.name, recipe_path=args.recipe)
        if args.cmd == "validate":
            return cli.validate(args.path)
        parser.print_help()
        return EXIT_FAILED
    except (RegistryError, ValueError, OSError, yaml.YAMLError, toml.TomlDecodeError) as e:
        logger.debug("command %s failed", args.cmd, exc_info=True)
        print_err(f"Command failed: {e}")
        return EXIT_FAILED

if __name__ == "__main__":
    sys.exit(main())
