"""
Command-line interface for the letter generation service.
"""

from __future__ import annotations

import asyncio
import base64
import datetime as dt
import json
import os
from pathlib import Path

import click
from pydantic import ValidationError as PydanticValidationError

from legen.client import RestStoreClient
from legen.common.config import Config
from legen.common.crypto import sign_document, verify
from legen.common.exceptions import ValidationError
from legen.common.logging_utils import configure_logging
from legen.common.models import (
    ClientConfig,
    EmailDraft,
    LetterForm,
    SessionContext,
    SignatureInput,
    SignatureRecord,
    UserProfile,
)
from legen.documents import render, stamp
from legen.letters import LetterComposer
from legen.server import start_server
from legen.server.pipeline import PipelineState, SendPipeline
from legen.signature import signature_from_input
from legen.signature.capture import DATA_URL_PREFIX


def _load_signature(path: str | None, signer: UserProfile) -> SignatureRecord | None:
    """A PNG file is used as-is; a JSON file holds recorded strokes."""
    if path is None:
        return None
    data = Path(path).read_bytes()
    try:
        if path.endswith(".json"):
            signature = SignatureInput(strokes=json.loads(data))
        else:
            signature = SignatureInput(
                image=DATA_URL_PREFIX + base64.b64encode(data).decode()
            )
    except ValueError as err:
        msg = f"Invalid signature file {path}: {err}"
        raise click.ClickException(msg) from err
    try:
        return signature_from_input(signature, signer.name, signer.id)
    except ValidationError as err:
        raise click.ClickException(str(err)) from err


@click.group()
def cli() -> None:
    """Letter generation and document signing CLI"""
    configure_logging(Config().LOG_LEVEL)


@cli.command()
@click.option(
    "--host",
    default=None,
    help="Host to bind server to (default: from LEGEN_SERVER_HOST env or 127.0.0.1)",
)
@click.option(
    "--port",
    default=None,
    type=int,
    help="Port to bind server to (default: from LEGEN_SERVER_PORT env or 8000)",
)
@click.option(
    "--data-dir",
    default=None,
    help="Directory for the JSON data files (default: from LEGEN_DATA_DIR env)",
)
def serve(host: str | None, port: int | None, data_dir: str | None) -> None:
    """Start the letter server"""
    # Set environment variables before building the config
    if host:
        os.environ["LEGEN_SERVER_HOST"] = host
    if port:
        os.environ["LEGEN_SERVER_PORT"] = str(port)
    if data_dir:
        os.environ["LEGEN_DATA_DIR"] = data_dir

    start_server(Config())


@cli.command()
@click.argument("letter_file", type=click.Path(exists=True, dir_okay=False))
@click.option("-o", "--output", default=None, help="PDF path (default: suggested name)")
@click.option(
    "--date",
    "letter_date",
    default=None,
    type=click.DateTime(formats=["%Y-%m-%d"]),
    help="Letter date (default: today)",
)
@click.option("--signature", default=None, help="Signature PNG or strokes JSON")
@click.option("--text", "text_only", is_flag=True, help="Print the text, skip the PDF")
def compose(
    letter_file: str,
    output: str | None,
    letter_date: dt.datetime | None,
    signature: str | None,
    text_only: bool,  # noqa: FBT001
) -> None:
    """Compose a letter from a JSON file with sender, recipients and form"""
    try:
        data = json.loads(Path(letter_file).read_text())
        sender = UserProfile.model_validate(data["sender"])
        recipients = [UserProfile.model_validate(r) for r in data.get("recipients", [])]
        form = LetterForm.model_validate(data["form"])
    except (KeyError, ValueError, PydanticValidationError) as err:
        msg = f"Invalid letter file {letter_file}: {err}"
        raise click.ClickException(msg) from err

    today = letter_date.date() if letter_date else dt.date.today()
    try:
        letter = LetterComposer().compose_form(form, sender, recipients, today)
    except ValidationError as err:
        raise click.ClickException(str(err)) from err

    body = data.get("edited_content") or letter.body_text
    if text_only:
        click.echo(body)
        return

    document = render(body, _load_signature(signature, sender))
    path = Path(output or letter.suggested_filename)
    path.write_bytes(document)
    click.echo(f"Letter written to {path}")


@cli.command()
@click.argument("document", type=click.Path(exists=True, dir_okay=False))
@click.option("-o", "--output", default=None, help="Write signature JSON to a file")
def sign(document: str, output: str | None) -> None:
    """Sign a document with a fresh one-time RSA key"""
    try:
        signature, public_key = sign_document(Path(document).read_bytes())
    except ValidationError as err:
        raise click.ClickException(str(err)) from err

    payload = json.dumps(
        {"digital_signature": signature, "public_key": public_key}, indent=2
    )
    if output:
        Path(output).write_text(payload)
        click.echo(f"Signature written to {output}")
    else:
        click.echo(payload)


@cli.command(name="verify")
@click.argument("document", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--signature-file",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="JSON with digital_signature and public_key",
)
def verify_cmd(document: str, signature_file: str) -> None:
    """Verify a document against its signature JSON"""
    try:
        data = json.loads(Path(signature_file).read_text())
        signature, public_key = data["digital_signature"], data["public_key"]
    except (KeyError, ValueError) as err:
        msg = f"Invalid signature file {signature_file}: {err}"
        raise click.ClickException(msg) from err

    if verify(Path(document).read_bytes(), signature, public_key):
        click.echo("Valid")
    else:
        click.echo("Invalid")
        raise click.exceptions.Exit(1)


@cli.command(name="stamp")
@click.argument("document", type=click.Path(exists=True, dir_okay=False))
@click.option("--signature", required=True, help="Signature PNG or strokes JSON")
@click.option("--name", "signer_name", required=True, help="Signer name for the caption")
@click.option("-o", "--output", required=True, help="Stamped PDF path")
def stamp_cmd(document: str, signature: str, signer_name: str, output: str) -> None:
    """Draw a signature onto the last page of a PDF"""
    signer = UserProfile(id="cli", name=signer_name, email="")
    record = _load_signature(signature, signer)
    try:
        stamped = stamp(Path(document).read_bytes(), record)
    except ValidationError as err:
        raise click.ClickException(str(err)) from err
    Path(output).write_bytes(stamped)
    click.echo(f"Stamped document written to {output}")


@cli.command()
@click.option("--server-url", default=None, help="Letter server URL")
@click.option("--user-id", required=True, help="Your registered user id")
@click.option("--to", "recipient", required=True, help="Recipient email")
@click.option("--subject", required=True)
@click.option("--message", required=True)
@click.option("--attachment", default=None, type=click.Path(exists=True, dir_okay=False))
@click.option("--signature", default=None, help="Signature PNG or strokes JSON")
def send(  # noqa: PLR0913
    server_url: str | None,
    user_id: str,
    recipient: str,
    subject: str,
    message: str,
    attachment: str | None,
    signature: str | None,
) -> None:
    """Send a message through a remote server, signing attachments locally"""
    client = RestStoreClient(ClientConfig(server_url=server_url, user_id=user_id))
    try:
        users = client.recipients()
    except ValidationError as err:
        raise click.ClickException(str(err)) from err
    profile = next((u for u in users if u.id == user_id), None)
    if profile is None:
        msg = f"Unknown user {user_id}"
        raise click.ClickException(msg)

    draft = EmailDraft(
        recipient_email=recipient,
        subject=subject,
        message=message,
        attachment=Path(attachment).read_bytes() if attachment else None,
        attachment_name=Path(attachment).name if attachment else None,
    )
    pipeline = SendPipeline(SessionContext(user_id=user_id, profile=profile), draft, client)

    async def run() -> None:
        await pipeline.submit()
        if pipeline.state is PipelineState.AWAITING_SIGNATURE:
            record = _load_signature(signature, profile)
            if record is None:
                pipeline.cancel()
                msg = "A signature is required to send attachments as staff."
                raise click.ClickException(msg)
            await pipeline.provide_signature(record)

    try:
        asyncio.run(run())
    except ValidationError as err:
        raise click.ClickException(str(err)) from err
    assert pipeline.result is not None
    click.echo(f"Sent email {pipeline.result.id}")


if __name__ == "__main__":
    cli()
