"""
Centralized Help Text Constants

CLI help text constants and exit codes shared by all subcommands.
"""

# Process exit codes
class ExitCodes:
    SUCCESS = 0
    JOBS_FAILED = 1
    CONFIGURATION_ERROR = 2


# Command help texts
RUN_HELP = "Render one artifact per binding and format, then report a run summary."
PLAN_HELP = "Enumerate jobs and output paths without rendering anything (dry run)."
INIT_HELP = "Print an example run configuration."

# Option help texts
CONFIG_HELP = "Path to the YAML run configuration."
OUTPUT_ROOT_HELP = "Root directory of the output hierarchy (overrides config)."
CONCURRENCY_HELP = "Maximum number of jobs rendering at once (overrides config)."
TIMEOUT_HELP = "Per-job timeout in seconds (overrides config)."
ENGINE_HELP = (
    "Rendering engine:\n"
    "  quarto: Render with the Quarto CLI\n"
    "  stub: Write placeholder artifacts (rehearsal runs)"
)
FORMAT_HELP = "Output format; repeat for several (overrides config), e.g. -f pdf -f html."
SUMMARY_HELP = "Write the JSON run summary to this path (overrides config)."
RETRY_FAILED_HELP = (
    "Path to a previous run summary. Only bindings that failed or were skipped "
    "in that run are rendered."
)
LOG_LEVEL_HELP = "Logging level (overrides config)."
LOG_FILE_HELP = "Also write logs to this file (rotated at 10MB)."
PROGRESS_HELP = "Show a progress bar while rendering."
