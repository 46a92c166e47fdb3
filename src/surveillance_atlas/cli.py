"""
Command-line entry points for the pipeline scripts.

Installed via pyproject.toml [project.scripts]:

    surveillance-atlas-acs        # Step 00: fetch ACS estimates
    surveillance-atlas-table      # Step 01: build the tract table
    surveillance-atlas-figures    # Step 02: render charts and maps
    surveillance-atlas-run-all    # Steps 01-02 (ACS fetch is run separately)
"""

import subprocess
import sys

from surveillance_atlas.paths import get_project_root


PIPELINE_STEPS = [
    ("01_build_tract_table.py", "Building tract table"),
    ("02_build_figures.py", "Building figures"),
]


def _run_script(script_name: str) -> int:
    """Run a pipeline script and return its exit code."""
    script_path = get_project_root() / "scripts" / script_name

    if not script_path.exists():
        print(f"Error: Script not found: {script_path}", file=sys.stderr)
        return 1

    result = subprocess.run([sys.executable, str(script_path)], cwd=get_project_root())
    return result.returncode


def run_00_acs() -> int:
    """Run step 00: Fetch ACS tract estimates."""
    return _run_script("00_fetch_acs.py")


def run_01_table() -> int:
    """Run step 01: Build the joined tract table."""
    return _run_script("01_build_tract_table.py")


def run_02_figures() -> int:
    """Run step 02: Render bar charts and choropleths."""
    return _run_script("02_build_figures.py")


def run_all() -> int:
    """
    Run the table and figure steps in order.

    Returns the first non-zero exit code, or 0 if all succeed.
    """
    print("=" * 60)
    print("NYC Surveillance Atlas - Full Pipeline")
    print("=" * 60)

    for script_name, description in PIPELINE_STEPS:
        print(f"\n[{description}]")
        print("-" * 40)

        exit_code = _run_script(script_name)
        if exit_code != 0:
            print(f"\nPipeline failed at: {script_name}")
            return exit_code

    print("\n" + "=" * 60)
    print("Full pipeline completed successfully")
    print("=" * 60)
    return 0


if __name__ == "__main__":
    sys.exit(run_all())
