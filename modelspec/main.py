"""Main entry point for modelspec.

Provides CLI interface for validating model configuration and running
models locally.

Usage:
    # Validate a model definition and environment
    modelspec validate --model-def model-def.json --model-env model-env.json \
        --register my_models.phases

    # Run a model against the local table named by its environment
    modelspec run --model-def model-def.json --model-env model-env.json \
        --config runner_config.yml
"""

import argparse
import logging
import sys

from modelspec.domain.errors import (
    AggregateValidationError,
    ExecutionError,
    MalformedDocument,
    StoreUnavailable,
    VersionUnsupported,
)
from modelspec.modeling.definition import ModelDefinition
from modelspec.modeling.environment import ModelEnvironment
from modelspec.modeling.registry import default_registry
from modelspec.pipelines.config import RunnerConfig, get_default_config, load_config
from modelspec.pipelines.extract_score import check_compatibility, create_local_pipeline


logger = logging.getLogger(__name__)

MODEL_DEF_REQUIRED = (
    "Specify the Model Definition to use with --model-def=/path/to/model-def.json"
)
MODEL_ENV_REQUIRED = (
    "Specify the Model Environment to use with --model-env=/path/to/model-env.json"
)


def _load_runner_config(args: argparse.Namespace) -> RunnerConfig:
    """Load runner config from file or return defaults, then apply CLI overrides."""
    config = load_config(args.config) if args.config else get_default_config()
    return config.with_modules(args.register or [])


def _configure_logging(config: RunnerConfig, level: str | None) -> None:
    logging.basicConfig(
        level=(level or config.logging.level).upper(),
        format=config.logging.format,
    )


def _report_errors(title: str, error: Exception) -> None:
    print(title, file=sys.stderr)
    if isinstance(error, AggregateValidationError):
        print(error.summary, file=sys.stderr)
        for message in error.messages:
            print(f"  - {message}", file=sys.stderr)
    else:
        print(f"  - {error}", file=sys.stderr)


def validate(args: argparse.Namespace, config: RunnerConfig) -> None:
    """Validate a model definition and/or model environment."""
    default_registry.load_modules(config.registry.modules)

    definition = environment = None
    failed = False

    if args.model_def:
        try:
            definition = ModelDefinition.from_json_file(args.model_def)
            print(f"Model definition '{definition.name}' ({definition.version}) is valid.")
        except (OSError, MalformedDocument, VersionUnsupported, AggregateValidationError) as e:
            _report_errors(f"Model definition {args.model_def} is invalid:", e)
            failed = True

    if args.model_env:
        try:
            environment = ModelEnvironment.from_json_file(args.model_env)
            print(f"Model environment '{environment.name}' ({environment.version}) is valid.")
        except (OSError, MalformedDocument, VersionUnsupported, AggregateValidationError) as e:
            _report_errors(f"Model environment {args.model_env} is invalid:", e)
            failed = True

    if definition is not None and environment is not None:
        errors = check_compatibility(definition, environment)
        if errors:
            print("The model definition cannot run in the model environment:", file=sys.stderr)
            for error in errors:
                print(f"  - {error.message}", file=sys.stderr)
            failed = True

    if failed:
        sys.exit(1)


def run(args: argparse.Namespace, config: RunnerConfig) -> None:
    """Run a model's extract and score phases locally."""
    default_registry.load_modules(config.registry.modules)

    try:
        definition = ModelDefinition.from_json_file(args.model_def)
        environment = ModelEnvironment.from_json_file(args.model_env)
        pipeline = create_local_pipeline(definition, environment, config)
        result = pipeline.run()
    except (MalformedDocument, VersionUnsupported, AggregateValidationError) as e:
        _report_errors("Cannot run the model:", e)
        sys.exit(1)
    except (OSError, StoreUnavailable, ExecutionError, ValueError) as e:
        _report_errors("The model run failed:", e)
        sys.exit(1)

    print("\n" + "=" * 60)
    print("RUN COMPLETE")
    print("=" * 60)
    print(f"Model: {result.model_name}")
    print(f"Tuples extracted: {result.tuples_extracted}")
    print(f"Rows scored: {result.rows_scored}")


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", type=str, help="Path to YAML runner config file")
    common.add_argument(
        "--register",
        type=str,
        action="append",
        metavar="MODULE",
        help="Module to import so its phase classes are registered (repeatable)",
    )
    common.add_argument("--log-level", type=str, help="Log level (overrides config)")
    common.add_argument("--model-def", type=str, help="Path to model definition JSON")
    common.add_argument("--model-env", type=str, help="Path to model environment JSON")

    parser = argparse.ArgumentParser(description="Model definition and environment tooling")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("validate", parents=[common], help="Validate model configuration")
    subparsers.add_parser("run", parents=[common], help="Run a model locally")

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return

    if args.command == "run":
        if not args.model_def:
            parser.error(MODEL_DEF_REQUIRED)
        if not args.model_env:
            parser.error(MODEL_ENV_REQUIRED)
    elif not args.model_def and not args.model_env:
        parser.error("Specify --model-def and/or --model-env to validate")

    config = _load_runner_config(args)
    _configure_logging(config, args.log_level)
    logger.debug("Runner configuration: %s", config)

    if args.command == "run":
        run(args, config)
    else:
        validate(args, config)


if __name__ == "__main__":
    main()
