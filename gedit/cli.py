import logging
from pathlib import Path

import click

from . import __version__, pipeline
from .chainable import FrameOrder, LogManager, OpenError


def _report(result: pipeline.PipelineResult):
    """Print a result summary and exit non-zero on failure."""
    ctx = click.get_current_context()
    log_path = LogManager.get_log_file_path() if LogManager.is_initialized() else None

    if not result.ok:
        error = result.error
        message = f'Error: {error}'
        if isinstance(error, OpenError):
            message = f'Error ({error.kind.value}): {error}'
        click.echo(message, err=True)
        if log_path:
            click.echo(f'Full log available at: {log_path}', err=True)
        ctx.exit(1)

    if result.operation == 'unpack':
        click.echo(f'Unpacked {result.frame_count} frames ({result.width}x{result.height})')
        for path in result.paths:
            click.echo(f'  {path}')
    else:
        click.echo(f'Packed {result.frame_count} frames ({result.width}x{result.height}) into {result.paths[0]}')


@click.group()
@click.version_option(__version__, prog_name='gedit')
@click.option('--log-dir', type=click.Path(file_okay=False), default='logs', show_default=True,
              help='Directory for the per-run log file.')
@click.option('--no-log-file', is_flag=True, default=False, help='Only log to the console.')
@click.option('--verbose', '-v', is_flag=True, default=False, help='Log every file created or discovered.')
@click.pass_context
def main(ctx, log_dir, no_log_file, verbose):
    """Unpack a GIF into PNG frames, or pack PNG frames into a GIF."""
    LogManager.set_level(logging.DEBUG if verbose else logging.INFO)
    if not no_log_file:
        LogManager.initialize(log_dir)
        ctx.call_on_close(LogManager.cleanup)


@main.command()
@click.argument('source')
@click.option('--output-dir', '-o', type=click.Path(file_okay=False), default=None,
              help='Directory for the PNG frames. Defaults to the GIF\'s directory, or ./output for URLs.')
def unpack(source, output_dir):
    """Unpack a GIF (local path or http URL) into its images."""
    options = pipeline.UnpackOptions(output_dir=Path(output_dir) if output_dir else None)
    _report(pipeline.unpack(source, options))


@main.command()
@click.argument('input_dir')
@click.option('--output-file', '-o', type=click.Path(dir_okay=False), required=True,
              help='GIF file to create.')
@click.option('--order', type=click.Choice([order.value for order in FrameOrder]), default=FrameOrder.NATURAL.value,
              show_default=True, help='Frame order: natural (a_2 before a_10), lexicographic, or filesystem.')
@click.option('--loop', type=click.IntRange(0, 0xFFFF), default=0, show_default=True,
              help='Loop count written to the GIF, 0 loops forever.')
@click.option('--no-loop', is_flag=True, default=False, help='Do not write a loop block.')
def pack(input_dir, output_file, order, loop, no_loop):
    """Pack a directory of paletted PNG images into a GIF.

    Every file in INPUT_DIR must be a palette-indexed PNG of the same size.
    """
    options = pipeline.PackOptions(
        output_file=Path(output_file),
        order=FrameOrder(order),
        loop=None if no_loop else loop,
    )
    _report(pipeline.pack(input_dir, options))


def run():
    """Console entry point; options may also be given as GEDIT_* environment variables."""
    main(auto_envvar_prefix='GEDIT')


if __name__ == '__main__':
    run()
