from evosandbox.utils.prng import Mulberry32

__all__ = ["Mulberry32"]
