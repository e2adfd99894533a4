import tempfile
import unittest
from pathlib import Path

from online_rl.config import load_config, parameter_from_config, parameters_from_config
from online_rl.parameter import Constant, ExponentialDecay, LinearDecay, PolynomialDecay

CONFIG = """
q_learning:
  alpha:
    value: 0.1
    schedule: exponential
    rate: 0.99
    floor: 0.01
  gamma: 0.95
  epsilon:
    value: 0.5
    schedule: linear
    step: 0.1
"""


class TestConfig(unittest.TestCase):
    def test_load_and_convert(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.yaml"
            path.write_text(CONFIG, encoding="utf-8")
            cfg = load_config(path)
        params = parameters_from_config(cfg["q_learning"])
        self.assertEqual(set(params), {"alpha", "gamma", "epsilon"})
        self.assertEqual(params["alpha"].schedule, ExponentialDecay(rate=0.99, floor=0.01))
        self.assertEqual(params["gamma"].value, 0.95)
        self.assertIsInstance(params["gamma"].schedule, Constant)
        self.assertIsInstance(params["epsilon"].schedule, LinearDecay)
        self.assertAlmostEqual(params["epsilon"].step().value, 0.4)

    def test_empty_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "empty.yaml"
            path.write_text("", encoding="utf-8")
            self.assertEqual(load_config(path), {})
        self.assertEqual(parameters_from_config(None), {})

    def test_polynomial(self):
        p = parameter_from_config({"value": 1.0, "schedule": "polynomial", "power": 0.5})
        self.assertIsInstance(p.schedule, PolynomialDecay)

    def test_invalid_entries(self):
        with self.assertRaises(ValueError):
            parameter_from_config({"value": 0.1, "schedule": "cosine"})
        with self.assertRaises(ValueError):
            parameter_from_config({"value": 0.1, "schedule": "exponential"})
        with self.assertRaises(ValueError):
            parameter_from_config({"schedule": "constant"})
        with self.assertRaises(ValueError):
            parameter_from_config("fast")
        with self.assertRaises(ValueError):
            parameter_from_config(True)


if __name__ == "__main__":
    unittest.main()
