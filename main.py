#!/usr/bin/env python3
"""gRPC reflection schema resolver - Entry point."""
import logging
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import click
from colorama import Fore, Style, init

from config import ReflectionConfig, app_config, parse_metadata
from reflector.cli.schema_printer import print_schema_summary, print_services
from reflector.errors import ReflectionError
from reflector.introspection import ReflectionClient

# Initialize colorama
init(autoreset=True)


def make_client(ctx) -> ReflectionClient:
    """Create a client from the group options."""
    return ReflectionClient.from_config(ctx.obj["config"])


def fail(error: Exception):
    """Report a reflection error and exit."""
    click.echo(f"{Fore.RED}❌ {error}{Style.RESET_ALL}", err=True)
    sys.exit(1)


def write_descriptor_set(descriptor_set, out: str):
    """Write a serialized FileDescriptorSet, relative paths under the output directory."""
    if not os.path.isabs(out):
        out = os.path.join(app_config.output_dir, out)
    directory = os.path.dirname(out)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(out, "wb") as f:
        f.write(descriptor_set.SerializeToString())
    click.echo(f"{Fore.GREEN}✅ Wrote {len(descriptor_set.file)} files to {out}")


@click.group()
@click.version_option(version="0.1.0")
@click.option("--target", default=None, help="Server address (host:port)")
@click.option("--tls", is_flag=True, help="Use a TLS channel")
@click.option("--ca-cert", type=click.Path(exists=True), default=None, help="Root certificates for TLS (implies --tls)")
@click.option("--timeout", type=float, default=None, help="Per-call deadline in seconds")
@click.option("-H", "--header", "headers", multiple=True, help="Request metadata as key=value")
@click.option("--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, target, tls, ca_cert, timeout, headers, verbose):
    """Inspect the protobuf schema of a gRPC server through reflection."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(name)s %(levelname)s %(message)s")

    base = app_config.reflection
    metadata = dict(base.metadata)
    try:
        for header in headers:
            metadata.update(parse_metadata(header))
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--header")

    ctx.obj = {
        "config": ReflectionConfig(
            target=target or base.target,
            timeout=timeout if timeout is not None else base.timeout,
            insecure=base.insecure and not (tls or ca_cert),
            root_certificates_path=ca_cert or base.root_certificates_path,
            metadata=metadata,
        )
    }


@cli.command()
@click.pass_context
def list_services(ctx):
    """List services exposed by the server."""
    config = ctx.obj["config"]
    try:
        with make_client(ctx) as client:
            services = client.list_services()
    except ReflectionError as e:
        fail(e)
    print_services(config.target, services)


@cli.command()
@click.argument("symbol")
@click.option("--out", type=click.Path(dir_okay=False), default=None, help="Write a FileDescriptorSet")
@click.pass_context
def describe_symbol(ctx, symbol, out):
    """Resolve the schema of the file defining SYMBOL."""
    try:
        with make_client(ctx) as client:
            schema = client.resolve_by_symbol(symbol)
    except ReflectionError as e:
        fail(e)

    print_schema_summary(f"Schema for {symbol}", schema)
    if out:
        write_descriptor_set(schema.to_file_descriptor_set(), out)


@cli.command()
@click.argument("filename")
@click.option("--out", type=click.Path(dir_okay=False), default=None, help="Write a FileDescriptorSet")
@click.pass_context
def describe_file(ctx, filename, out):
    """Resolve the schema of FILENAME and its imports."""
    try:
        with make_client(ctx) as client:
            schema = client.resolve_by_filename(filename)
    except ReflectionError as e:
        fail(e)

    print_schema_summary(f"Schema for {filename}", schema)
    if out:
        write_descriptor_set(schema.to_file_descriptor_set(), out)


if __name__ == "__main__":
    cli()
