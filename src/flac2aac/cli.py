"""
Command-line interface for flac2aac.
"""

import argparse
import sys
import logging

from . import __version__
from .config import load_settings
from .core.processor import ConversionProcessor, RunMode
from .core.converter import FFmpegConverter
from .core.device_sync import DeviceSync
from .utils.progress_tracker import create_progress_tracker
from .utils.prompts import ask_yes_no, ask_path
from .utils.resource_manager import SignalHandler
from .exceptions import (
    Flac2AacError, DependencyError, OperationInterrupted, get_error_summary
)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INTERRUPTED = 130


def setup_logging(verbose=False, quiet=False, log_file=None):
    """
    Sets up the logging configuration for the application.

    Console output stays terse; a detailed log is only written when a log
    file is requested, so dry runs leave no files behind.

    Args:
        verbose (bool): Show informational messages on the console.
        quiet (bool): Only show errors on the console.
        log_file (str): Optional path of a detailed log file.
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if log_file else logging.INFO)

    console_handler = logging.StreamHandler(sys.stderr)
    if quiet:
        console_handler.setLevel(logging.ERROR)
    elif verbose:
        console_handler.setLevel(logging.INFO)
    else:
        console_handler.setLevel(logging.WARNING)
    console_handler.setFormatter(logging.Formatter('%(message)s'))
    root.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(message)s'))
        root.addHandler(file_handler)


def build_parser():
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="flac2aac",
        description="Convert a tree of .flac files to .m4a (AAC), keeping tags and cover art",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  flac2aac ~/Music/flac ~/Music/aac --dry-run
  flac2aac ~/Music/flac ~/Music/aac
  flac2aac ~/Music/flac ~/Music/aac --with-delete
  flac2aac ~/Music/flac ~/Music/aac --cleanup-only --dry-run
  flac2aac ~/Music/flac ~/Music/aac --copy-to-device

Run without arguments to be offered an interactive dry run.
        """
    )

    parser.add_argument(
        'source_dir',
        nargs='?',
        help='Root folder containing .flac files'
    )

    parser.add_argument(
        'dest_dir',
        nargs='?',
        help='Destination root for .m4a output'
    )

    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Show what would happen (no conversion, deletes or copies)'
    )

    parser.add_argument(
        '--with-delete',
        action='store_true',
        help='Delete each .flac after its successful conversion'
    )

    parser.add_argument(
        '--cleanup-only',
        action='store_true',
        help='Skip conversion, just delete .flac files whose .m4a is newer'
    )

    parser.add_argument(
        '--copy-to-device',
        action='store_true',
        help='After a run without failures, copy the destination into Music/ on removable devices'
    )

    parser.add_argument(
        '--ffmpeg',
        help='Path to the FFmpeg executable (default: ffmpeg on PATH)'
    )

    parser.add_argument(
        '--config',
        help='JSON settings file (default: $FLAC2AAC_CONFIG or ~/.flac2aac_config.json)'
    )

    parser.add_argument(
        '--log-file',
        help='Also write a detailed log to this file'
    )

    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Show informational log messages'
    )
    verbosity.add_argument(
        '--quiet', '-q',
        action='store_true',
        help='Only report failures'
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'flac2aac {__version__}'
    )

    return parser


def parse_arguments(argv=None):
    """
    Parses and validates command line arguments for the application.

    Returns:
        tuple: (parser, argparse.Namespace)
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.source_dir is not None and args.dest_dir is None:
        parser.error("both <source_dir> and <destination_dir> are required")

    return parser, args


def resolve_mode(args):
    """Turn parsed flags into the immutable run mode."""
    return RunMode(
        delete_after_convert=args.with_delete,
        dry_run=args.dry_run,
        cleanup_only=args.cleanup_only,
        copy_after_success=args.copy_to_device,
    )


def main(argv=None):
    """Main entry point for the CLI application."""
    parser, args = parse_arguments(argv)
    setup_logging(verbose=args.verbose, quiet=args.quiet, log_file=args.log_file)

    signal_handler = SignalHandler()
    try:
        signal_handler.install()
        mode = resolve_mode(args)
        source_dir, dest_dir = args.source_dir, args.dest_dir

        if source_dir is None:
            parser.print_help()
            print()
            if not ask_yes_no("Would you like to run a dry-run conversion?"):
                sys.exit(EXIT_OK)
            source_dir = ask_path("Enter source dir")
            dest_dir = ask_path("Enter destination dir")
            mode = RunMode(dry_run=True)

        settings = load_settings(args.config).with_overrides(ffmpeg_path=args.ffmpeg)
        progress_tracker = create_progress_tracker(quiet=args.quiet)

        processor = ConversionProcessor(
            source_dir,
            dest_dir,
            settings=settings,
            converter=FFmpegConverter(settings),
            confirm=ask_yes_no,
            progress_tracker=progress_tracker,
            signal_handler=signal_handler,
            device_sync=DeviceSync(settings.device_music_dir, show_progress=not args.quiet),
        )
        outcomes = processor.run(mode)

        errors = [error for outcome in outcomes for error in outcome.errors]
        if errors:
            print(f"\n{get_error_summary(errors)}")
        sys.exit(EXIT_OK)

    except (KeyboardInterrupt, OperationInterrupted):
        print("\nAborted by user. Exiting...")
        sys.exit(EXIT_INTERRUPTED)
    except DependencyError as e:
        print(f"\nDependency Error: {e.get_user_message()}")
        sys.exit(EXIT_ERROR)
    except Flac2AacError as e:
        print(f"\nError: {e.get_user_message()}")
        sys.exit(EXIT_ERROR)
    except Exception as e:
        print(f"\nUnexpected error: {str(e)}")
        logging.exception('Unexpected error')
        sys.exit(EXIT_ERROR)
    finally:
        signal_handler.uninstall()


if __name__ == '__main__':
    main()
