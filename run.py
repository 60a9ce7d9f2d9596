"""Run the sandbox CLI from a source checkout: ``python run.py optimize --fitness preset2``."""

from evosandbox.entrypoint.cli import run

if __name__ == "__main__":
    run()
