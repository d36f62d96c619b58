"""Console output for resolved schemas."""
from typing import List

import click
from colorama import Fore, Style

from reflector.schema.assembler import SchemaRoot


def print_header(title: str):
    """Print a section header."""
    click.echo(f"\n{Fore.CYAN}{'━' * 45}")
    click.echo(f"{Fore.CYAN}{title}")
    click.echo(f"{Fore.CYAN}{'━' * 45}{Style.RESET_ALL}\n")


def print_services(target: str, services: List[str]):
    """Print service names reported by a server."""
    print_header(f"Services on {target}")
    for name in services:
        click.echo(f"  {Fore.GREEN}{name}{Style.RESET_ALL}")
    click.echo(f"\nTotal Services: {len(services)}")


def print_schema_summary(title: str, schema: SchemaRoot):
    """Print files, services and methods of a resolved schema."""
    print_header(title)

    descriptor_set = schema.to_file_descriptor_set()
    click.echo(f"Total Files: {len(descriptor_set.file)}\n")

    for proto in descriptor_set.file:
        package = proto.package or "<no package>"
        click.echo(f"📄 {proto.name} ({package})")
        click.echo(
            f"    messages: {len(proto.message_type)} | enums: {len(proto.enum_type)}"
            f" | services: {len(proto.service)}"
        )

    services = schema.service_names()
    if not services:
        return

    click.echo()
    for name in services:
        service = schema.find_service(name)
        click.echo(f"{Fore.GREEN}🔌 {name}{Style.RESET_ALL}")
        methods = list(service.methods)
        for method in methods:
            prefix = "    └─ " if method is methods[-1] else "    ├─ "
            click.echo(
                f"{prefix}{method.name}({method.input_type.full_name})"
                f" -> {method.output_type.full_name}"
            )
