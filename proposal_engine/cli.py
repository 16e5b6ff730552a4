"""Command line interface for the Proposal Engine.

Usage:
    proposal-engine generate [--config PATH] [--output NAME] [--created-by ID]
    proposal-engine generate-custom --company NAME [--output NAME]
    proposal-engine status
    proposal-engine validate [--config PATH]
"""

import asyncio
import logging

import click

from proposal_engine.core.config import get_settings
from proposal_engine.core.logging import setup_logging
from proposal_engine.errors import ProposalEngineError
from proposal_engine.models import GenerationResult
from proposal_engine.services.proposal_generator import proposal_generator
from proposal_engine.utils.files import load_config_file

SAMPLE_TEMPLATE = {
    "name": "Sample Template",
    "fileName": "Our Client Promise.pdf",
    "editable": False,
}


def _print_summary(result: GenerationResult, detailed: bool = True) -> None:
    click.echo("Summary:")
    click.echo(f"  Company: {result.company}")
    click.echo(f"  Output: {result.file_name}")
    click.echo(f"  File Size: {result.file_size}")
    if detailed:
        click.echo(f"  Sections: {result.sections_count}")
        click.echo(f"  Templates: {result.templates_processed}")
        click.echo(f"  Generated: {result.generated_at.isoformat()}")
    if result.database:
        click.echo(f"  Version: {result.database.version_label} of proposal {result.database.proposal_id}")


@click.group()
@click.option("--quiet", is_flag=True, help="Only log warnings and errors.")
def cli(quiet):
    """Generate multi-section PDF proposals from template configurations."""
    setup_logging(stream=click.get_text_stream("stderr"))
    if quiet:
        logging.getLogger().setLevel(logging.WARNING)


@cli.command()
@click.option("--config", "config_path", type=click.Path(dir_okay=False), help="Configuration file (default: data.json).")
@click.option("--output", "output_file_name", help="Output file name (default: versioned name).")
@click.option("--created-by", help="User ID recorded on the proposal.")
def generate(config_path, output_file_name, created_by):
    """Generate a proposal from a configuration file."""
    click.echo("Generating proposal...")
    try:
        result = asyncio.run(
            proposal_generator.generate_from_config_file(config_path, output_file_name, created_by)
        )
    except (ProposalEngineError, FileNotFoundError, ValueError) as e:
        raise click.ClickException(f"Failed to generate proposal: {e}")

    click.echo("Proposal generation completed successfully!")
    _print_summary(result)


@cli.command("generate-custom")
@click.option("--company", required=True, help="Company name for the proposal.")
@click.option("--output", "output_file_name", help="Output file name (default: versioned name).")
@click.option("--created-by", help="User ID recorded on the proposal.")
def generate_custom(company, output_file_name, created_by):
    """Generate a minimal proposal for COMPANY with the sample template."""
    click.echo("Generating custom proposal...")
    config = {"Company": company, "Templates": [dict(SAMPLE_TEMPLATE)]}
    try:
        result = asyncio.run(proposal_generator.generate(config, output_file_name, created_by))
    except ProposalEngineError as e:
        raise click.ClickException(f"Failed to generate custom proposal: {e}")

    click.echo("Custom proposal generation completed!")
    _print_summary(result, detailed=False)


@cli.command()
def status():
    """Show service status."""
    info = proposal_generator.get_status()
    click.echo("Service Status:")
    click.echo(f"  Service: {info['service']}")
    click.echo(f"  Status: {info['status']}")
    click.echo(f"  Templates Directory: {info['templates_directory']}")
    click.echo(f"  Output Directory: {info['output_directory']}")
    click.echo(f"  Last Check: {info['timestamp']}")


@cli.command()
@click.option("--config", "config_path", type=click.Path(dir_okay=False), help="Configuration file (default: data.json).")
def validate(config_path):
    """Check that every template of a configuration is available."""
    config_path = config_path or get_settings().DEFAULT_CONFIG_FILE
    try:
        config = load_config_file(config_path)
        validation = proposal_generator.validate_templates(config)
    except (ProposalEngineError, FileNotFoundError, ValueError) as e:
        raise click.ClickException(f"Failed to validate templates: {e}")

    click.echo("Template Validation:")
    click.echo(f"  Total Templates: {validation.total_templates}")
    click.echo(f"  Available Templates: {validation.available_templates}")
    click.echo(f"  Missing Templates: {len(validation.missing_templates)}")

    if validation.missing_templates:
        for name in validation.missing_templates:
            click.echo(f"  - {name}", err=True)
        raise click.ClickException(
            "Some templates are missing, add them to the templates directory"
        )

    click.echo("All templates are available")


def main():
    cli()


if __name__ == "__main__":
    main()
