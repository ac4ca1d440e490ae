import subprocess
import shutil
import os
import sys

def run_unit_tests():
    """Run unit tests in namedsql/tests."""
    print("Running unit tests...")
    result = subprocess.run([sys.executable, "-m", "pytest", "namedsql/tests"], check=False)
    sys.exit(result.returncode)

def run_integration_tests():
    """Run integration tests in tests/ against the Postgres from docker-compose.yml."""
    print("Running integration tests...")
    result = subprocess.run([sys.executable, "-m", "pytest", "tests"], check=False)
    sys.exit(result.returncode)

def run_all_tests():
    """Run all tests (unit + integration)."""
    print("Running all tests...")
    result = subprocess.run([sys.executable, "-m", "pytest"], check=False)
    sys.exit(result.returncode)

def clean_project():
    """Remove venv, .pytest_cache and every __pycache__ directory."""
    folders_to_remove = ["venv", ".pytest_cache"]

    for root, dirs, files in os.walk("."):
        if "__pycache__" in dirs:
            folders_to_remove.append(os.path.join(root, "__pycache__"))

    print("Cleaning up project...")
    for folder in sorted(set(folders_to_remove)):
        if not os.path.exists(folder):
            continue
        try:
            shutil.rmtree(folder)
            print(f"Removed: {folder}")
        except OSError as e:
            print(f"Failed to remove {folder}: {e}")

    print("Cleanup complete.")

def setup_tests():
    """Start the Postgres container used by the integration tests."""
    print("Starting Docker services for integration tests...")
    docker_result = subprocess.run(["docker-compose", "up", "-d"], check=False)
    if docker_result.returncode != 0:
        sys.exit(docker_result.returncode)

    print("Test setup complete.")
