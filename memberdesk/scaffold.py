"""Generate scaffolding files for a new record type."""

from __future__ import annotations

import argparse
import datetime
import sys
from collections.abc import Sequence
from pathlib import Path
from string import Template

_MIGRATION = Template('''\
"""Create the ${name} table."""

from memberdesk.schema import Migration

MIGRATION = Migration(
    "${version}",
    up=(
        'CREATE TABLE IF NOT EXISTS "${name}" '
        '( "id" INTEGER NOT NULL PRIMARY KEY AUTOINCREMENT )',
    ),
    down=('DROP TABLE "${name}"',),
)
''')

_ENTITY = Template('''\
"""The ${name} record."""

from dataclasses import dataclass


@dataclass
class ${class_name}:
    id: int
''')

_HANDLERS = Template('''\
"""Request handlers for ${name} records."""

from flask import jsonify


def list_${name}s():
    return jsonify("List of ${name}s")


def create_${name}():
    return jsonify("Create a ${name}")


def update_${name}():
    return jsonify("Update a ${name}")


def delete_${name}():
    return jsonify("Delete a ${name}")
''')

_INDEX_VIEW = Template('''\
<h1>List of ${name}s</h1>
<table>
    <thead>
        <tr>
            <th>ID</th>
            <th>Name</th>
        </tr>
    </thead>
    <tbody>
        {% for ${name} in ${name}s %}
        <tr>
            <td>{{ ${name}.id }}</td>
            <td>{{ ${name}.name }}</td>
        </tr>
        {% endfor %}
    </tbody>
</table>
''')


def _check_name(name: str) -> None:
    if not name.isidentifier():
        raise ValueError(f"not a valid model name: {name!r}")


def generate_migration(
    name: str, root: str | Path = ".", now: datetime.datetime | None = None
) -> Path:
    """Write a migration creating the table; the migrations directory must exist."""
    _check_name(name)
    now = now or datetime.datetime.now(datetime.timezone.utc)
    timestamp = now.strftime("%Y%m%d%H%M%S")
    version = f"{timestamp}_create_{name}"
    path = Path(root) / "migrations" / f"{version}.py"
    path.write_text(_MIGRATION.substitute(name=name, version=version), encoding="utf-8")
    print(f"Created migration for {name}")
    return path


def generate_entity(name: str, root: str | Path = ".") -> Path:
    """Write the record class into the entities directory."""
    _check_name(name)
    directory = Path(root) / "entities"
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{name}.py"
    class_name = "".join(part.capitalize() for part in name.split("_")) or name
    path.write_text(
        _ENTITY.substitute(name=name, class_name=class_name), encoding="utf-8"
    )
    print(f"Generated entity for {name}")
    return path


def generate_crud_handlers(name: str, root: str | Path = ".") -> Path:
    """Write list/create/update/delete handlers; the handlers directory must exist."""
    _check_name(name)
    path = Path(root) / "handlers" / f"{name}_handlers.py"
    path.write_text(_HANDLERS.substitute(name=name), encoding="utf-8")
    print(f"Created CRUD handlers for {name}")
    return path


def generate_views(name: str, root: str | Path = ".") -> Path:
    """Write the index template under ``templates/<name>``."""
    _check_name(name)
    directory = Path(root) / "templates" / name
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / "index.html"
    path.write_text(_INDEX_VIEW.substitute(name=name), encoding="utf-8")
    print(f"Created views for {name}")
    return path


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="memberdesk-scaffold",
        description="Generates scaffolds for new record types",
    )
    parser.add_argument("--version", action="version", version="1.0")
    parser.add_argument("--root", default=".", help="project directory")
    commands = parser.add_subparsers(dest="command")
    generate = commands.add_parser("generate", help="Generates scaffolds")
    generate.add_argument(
        "scaffold", choices=["scaffold"], help="The type of scaffold to generate"
    )
    generate.add_argument("name", help="The name of the model to generate")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the scaffolding command line."""
    args = _build_parser().parse_args(argv)
    if args.command == "generate":
        generate_migration(args.name, args.root)
        generate_entity(args.name, args.root)
        generate_crud_handlers(args.name, args.root)
        generate_views(args.name, args.root)
    return 0


if __name__ == "__main__":
    sys.exit(main())