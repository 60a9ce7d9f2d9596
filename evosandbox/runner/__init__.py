from evosandbox.runner.run_loop import RunLoop, Steppable

__all__ = ["RunLoop", "Steppable"]
