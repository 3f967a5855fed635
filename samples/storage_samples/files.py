"""
Command-line sample for basic file operations on a storage bucket.

Each subcommand performs a single operation and prints a one-line
confirmation that the integration suite asserts on, e.g.

    python -m storage_samples upload my-bucket ./resources/test.txt
    python -m storage_samples move my-bucket test.txt test2.txt
    python -m storage_samples list my-bucket test "/"
"""

import asyncio
import logging
from functools import wraps
from typing import Callable, Optional

import click
from botocore.exceptions import BotoCoreError, ClientError

from .config import configure_logging, get_settings
from .storage_client import S3Client

logger = logging.getLogger(__name__)


def storage_command(func: Callable):
    """Run an async subcommand and turn storage errors into exit status 1."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return asyncio.run(func(*args, **kwargs))
        except (ClientError, BotoCoreError, OSError) as e:
            logger.debug(f"{func.__name__} failed", exc_info=True)
            click.echo(f"Error: {e}", err=True)
            raise SystemExit(1)

    return wrapper


def _client(ctx: click.Context) -> S3Client:
    return ctx.obj["client"]


@click.group()
@click.option("--log-level", default=None, help="Log level (default: LOG_LEVEL or INFO)")
@click.pass_context
def cli(ctx: click.Context, log_level: Optional[str]) -> None:
    """Upload, download, move, copy, list and inspect files in a bucket."""
    configure_logging(log_level)
    ctx.ensure_object(dict)
    if "client" not in ctx.obj:
        ctx.obj["client"] = S3Client(get_settings())


@cli.command()
@click.argument("bucket")
@click.argument("file_path")
@click.pass_context
@storage_command
async def upload(ctx: click.Context, bucket: str, file_path: str) -> None:
    """Upload a local file to a bucket."""
    await _client(ctx).upload_file(bucket, file_path)
    click.echo(f"{file_path} uploaded to {bucket}.")


@cli.command("upload-with-kms-key")
@click.argument("bucket")
@click.argument("file_path")
@click.argument("kms_key_name")
@click.pass_context
@storage_command
async def upload_with_kms_key(
    ctx: click.Context, bucket: str, file_path: str, kms_key_name: str
) -> None:
    """Upload a local file encrypted with a customer-managed KMS key."""
    await _client(ctx).upload_file(bucket, file_path, kms_key_name=kms_key_name)
    click.echo(f"{file_path} uploaded to {bucket} using {kms_key_name}.")


@cli.command()
@click.argument("bucket")
@click.argument("file_name")
@click.argument("dest_path")
@click.pass_context
@storage_command
async def download(ctx: click.Context, bucket: str, file_name: str, dest_path: str) -> None:
    """Download a file to a local path."""
    client = _client(ctx)
    await client.download_file(bucket, file_name, dest_path)
    click.echo(f"{client.uri(bucket, file_name)} downloaded to {dest_path}.")


@cli.command()
@click.argument("bucket")
@click.argument("file_name")
@click.argument("new_file_name")
@click.pass_context
@storage_command
async def move(ctx: click.Context, bucket: str, file_name: str, new_file_name: str) -> None:
    """Rename a file within a bucket."""
    client = _client(ctx)
    await client.move_file(bucket, file_name, new_file_name)
    click.echo(
        f"{client.uri(bucket, file_name)} moved to {client.uri(bucket, new_file_name)}."
    )


@cli.command()
@click.argument("src_bucket")
@click.argument("src_file")
@click.argument("dest_bucket")
@click.argument("dest_file")
@click.pass_context
@storage_command
async def copy(
    ctx: click.Context, src_bucket: str, src_file: str, dest_bucket: str, dest_file: str
) -> None:
    """Copy a file, possibly into another bucket."""
    client = _client(ctx)
    await client.copy_file(src_bucket, src_file, dest_bucket, dest_file)
    click.echo(
        f"{client.uri(src_bucket, src_file)} copied to {client.uri(dest_bucket, dest_file)}."
    )


@cli.command("list")
@click.argument("bucket")
@click.argument("prefix", required=False, default="")
@click.argument("delimiter", required=False, default="")
@click.pass_context
@storage_command
async def list_files(ctx: click.Context, bucket: str, prefix: str, delimiter: str) -> None:
    """List files in a bucket, optionally filtered by prefix and delimiter."""
    listing = await _client(ctx).list_files(bucket, prefix=prefix, delimiter=delimiter)
    click.echo("Files:")
    for key in listing["files"]:
        click.echo(key)
    if delimiter:
        click.echo("Prefixes:")
        for common_prefix in listing["prefixes"]:
            click.echo(common_prefix)


@cli.command("make-public")
@click.argument("bucket")
@click.argument("file_name")
@click.pass_context
@storage_command
async def make_public(ctx: click.Context, bucket: str, file_name: str) -> None:
    """Grant anonymous read access to a file."""
    client = _client(ctx)
    await client.make_public(bucket, file_name)
    click.echo(f"{client.uri(bucket, file_name)} is now public.")


@cli.command("generate-signed-url")
@click.argument("bucket")
@click.argument("file_name")
@click.pass_context
@storage_command
async def generate_signed_url(ctx: click.Context, bucket: str, file_name: str) -> None:
    """Print a time-limited URL for reading a file."""
    url = await _client(ctx).generate_signed_url(bucket, file_name)
    click.echo(f"The signed url for {file_name} is {url}.")


@cli.command("get-metadata")
@click.argument("bucket")
@click.argument("file_name")
@click.pass_context
@storage_command
async def get_metadata(ctx: click.Context, bucket: str, file_name: str) -> None:
    """Print the metadata of a file."""
    client = _client(ctx)
    metadata = await client.get_metadata(bucket, file_name)
    if metadata is None:
        click.echo(f"Error: {client.uri(bucket, file_name)} not found.", err=True)
        raise SystemExit(1)

    click.echo(f"File: {metadata['name']}")
    click.echo(f"Bucket: {metadata['bucket']}")
    click.echo(f"Storage class: {metadata['storage_class']}")
    click.echo(f"Size: {metadata['size']}")
    click.echo(f"Updated: {metadata['updated']}")
    click.echo(f"Etag: {metadata['etag']}")
    click.echo(f"Version ID: {metadata['version_id']}")
    click.echo(f"Content-type: {metadata['content_type']}")
    click.echo(f"Cache-control: {metadata['cache_control']}")
    click.echo(f"Content-disposition: {metadata['content_disposition']}")
    click.echo(f"Content-encoding: {metadata['content_encoding']}")
    click.echo(f"Content-language: {metadata['content_language']}")
    click.echo(f"Encryption: {metadata['encryption']}")
    click.echo(f"KMS key: {metadata['kms_key_name']}")
    click.echo(f"Metadata: {metadata['metadata']}")


@cli.command()
@click.argument("bucket")
@click.argument("file_name")
@click.pass_context
@storage_command
async def delete(ctx: click.Context, bucket: str, file_name: str) -> None:
    """Delete a file from a bucket."""
    client = _client(ctx)
    await client.delete_file(bucket, file_name)
    click.echo(f"{client.uri(bucket, file_name)} deleted.")


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
