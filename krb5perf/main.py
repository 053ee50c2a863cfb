"""
Command line entry point for krb5perf.

Performance benchmarking and stress testing of Kerberos v5 KDC AS_REQ
(or HTTP Basic authentication) under controlled concurrency.
"""

import argparse
import sys
import traceback
from typing import List, Optional

from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn, TimeElapsedColumn

from krb5perf import __version__
from krb5perf.config import BACKENDS, RunConfig, load_config
from krb5perf.core.exceptions import ConfigurationError, PreconditionFailure, RunCancelled
from krb5perf.core.interfaces import IAuthenticator
from krb5perf.services.load_service import LoadService
from krb5perf.services.report_service import ReportService
from krb5perf.utils.credentials import build_rotator
from krb5perf.utils.logger import Logger
from krb5perf.utils.profiling import profiled


EXIT_OK = 0
EXIT_CONFIG = 1
EXIT_PRECONDITION = 2
EXIT_UNEXPECTED = 3
EXIT_CANCELLED = 130


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command line arguments.

    Flags left unset stay None so the config file and environment can
    supply them.
    """
    parser = argparse.ArgumentParser(
        prog="krb5perf",
        description="Benchmark and stress test Kerberos v5 KDC AS_REQ (or HTTP Basic auth)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  krb5perf -c alice@EXAMPLE.COM -P secret -s krbtgt/EXAMPLE.COM -i 1000 -p 50
  krb5perf -c host/web1@EXAMPLE.COM -k /etc/krb5.keytab -s krbtgt/EXAMPLE.COM -i 500 -p 20
  krb5perf -C users.csv -s krbtgt/EXAMPLE.COM -i 10000 -p 200 -q
  krb5perf --backend http --url https://sso.example.com/login -C users.csv -s portal -i 100 -p 10
        """
    )

    parser.add_argument('-k', '--keytab', help='Keytab to authenticate with (env: KTNAME)')
    parser.add_argument('-c', '--client', help='Client principal')
    parser.add_argument('-C', '--csv', help='CSV file containing records of the form client,password')
    parser.add_argument('-P', '--password', help='Password to authenticate with')
    parser.add_argument('-s', '--service', help='Target service principal')
    parser.add_argument('-i', '--iterations', type=int, help='Total number of authentication attempts')
    parser.add_argument('-p', '--parallelism', type=int, help='Number of concurrent workers')
    parser.add_argument('--queue-size', type=int, dest='queue_size',
                        help='Job/result queue capacity (default: iterations)')
    parser.add_argument('--backend', choices=BACKENDS, help='Authentication backend (default: kerberos)')
    parser.add_argument('--url', dest='base_url', help='Endpoint for the http backend')
    parser.add_argument('--timeout', type=float, help='Per-request timeout for the http backend (seconds)')
    parser.add_argument('--cpuprofile', help='Writes a CPU profile to the specified file')
    parser.add_argument('--memprofile', help='Writes a memory profile to the specified file')
    parser.add_argument('-q', '--quiet', action='store_true', default=None,
                        help='Suppress output and only provide summary')
    parser.add_argument('-V', '--verbose', action='store_true', default=None,
                        help='Show each request as they complete')
    parser.add_argument('--detail', action='store_true', default=None,
                        help='Add median, standard deviation and confidence interval to the summary')
    parser.add_argument('--config', help='YAML config file (default: config/config.yaml)')
    parser.add_argument('--log-level', dest='log_level',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        help='Logging level (default: WARNING)')
    parser.add_argument('--log-file', dest='log_file', help='Also write log output to this file')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    return parser.parse_args(argv)


def make_logger(config: RunConfig) -> Logger:
    return Logger(
        name="krb5perf",
        level=config.log_level,
        log_file=config.log_file,
        verbose=config.verbose
    )


def make_authenticator(config: RunConfig, logger: Logger) -> IAuthenticator:
    """Build the backend named in the config."""
    if config.backend == "http":
        from krb5perf.services.http_service import HttpAuthenticator
        return HttpAuthenticator(config.base_url, timeout=config.timeout, logger=logger)

    from krb5perf.services.kerberos_service import KerberosAuthenticator
    return KerberosAuthenticator(logger=logger)


def run_benchmark(
    config: RunConfig,
    authenticator: IAuthenticator,
    logger: Logger,
    out=None
) -> None:
    """Run one benchmark and write the report to out (stdout by default)."""
    out = out or sys.stdout

    rotator = build_rotator(
        client=config.client,
        password=config.password,
        keytab=config.keytab,
        csv_path=config.csv
    )

    if config.keytab:
        logger.info(f"Using keytab at '{config.keytab}' to authenticate")
    elif config.password:
        logger.info("Using password to authenticate")
    else:
        logger.info(f"Using {len(rotator)} credentials from '{config.csv}'")

    progress = None
    task = None
    if config.show_progress:
        progress = Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=Console(stderr=True),
            transient=True
        )
        task = progress.add_task(authenticator.name, total=config.iterations)

    service = LoadService(
        authenticator=authenticator,
        rotator=rotator,
        target_service=config.service,
        iterations=config.iterations,
        parallelism=config.parallelism,
        queue_size=config.queue_size,
        logger=logger,
        verbose=config.verbose,
        on_result=(lambda _: progress.advance(task)) if progress else None
    )

    with profiled(config.cpuprofile, config.memprofile, logger):
        if progress:
            with progress:
                summary = service.run()
        else:
            summary = service.run()

    out.write(ReportService(detail=config.detail).render(summary))
    out.flush()


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_arguments(argv)
    overrides = {k: v for k, v in vars(args).items() if k != 'config'}

    logger = None
    try:
        config = load_config(args.config, overrides)
        logger = make_logger(config)
        authenticator = make_authenticator(config, logger)
        run_benchmark(config, authenticator, logger)
        return EXIT_OK

    except ConfigurationError as e:
        print(f"Configuration error: {str(e)}", file=sys.stderr)
        return EXIT_CONFIG
    except PreconditionFailure as e:
        print(f"Fatal: {str(e)}", file=sys.stderr)
        return EXIT_PRECONDITION
    except (RunCancelled, KeyboardInterrupt) as e:
        print(f"\nInterrupted: {str(e) or 'cancelled'}", file=sys.stderr)
        return EXIT_CANCELLED
    except Exception as e:
        print(f"Unexpected error: {str(e)}", file=sys.stderr)
        traceback.print_exc()
        return EXIT_UNEXPECTED
    finally:
        if logger is not None:
            logger.close()


if __name__ == "__main__":
    sys.exit(main())
