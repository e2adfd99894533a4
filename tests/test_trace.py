import unittest

import numpy as np

from online_rl.parameter import Parameter
from online_rl.trace import Trace


class TestTrace(unittest.TestCase):
    def test_accumulate(self):
        trace = Trace(2, 0.5)
        trace.accumulate(np.array([1.0, 0.0]), 0.5)
        trace.accumulate(np.array([1.0, 0.0]), 0.5)
        np.testing.assert_allclose(trace.get(), [1.5, 0.0])

    def test_replace(self):
        trace = Trace(2, 0.5)
        trace.accumulate(np.array([1.0, 1.0]), 0.5)
        trace.replace(np.array([1.0, 0.0]), 0.5)
        np.testing.assert_allclose(trace.get(), [1.0, 0.5])

    def test_true_online(self):
        trace = Trace(2, 0.5)
        phi = np.array([1.0, 0.0])
        trace.true_online(phi, 0.5, 0.1)
        np.testing.assert_allclose(trace.get(), [1.0, 0.0])
        # (1 - 0.1 * 0.5 * 1) = 0.95 on top of the decayed 0.5
        trace.true_online(phi, 0.5, 0.1)
        np.testing.assert_allclose(trace.get(), [1.45, 0.0])

    def test_matrix_shape(self):
        trace = Trace((2, 3), 0.9)
        x = np.zeros((2, 3))
        x[1, 2] = 1.0
        trace.update(x)
        self.assertEqual(trace.get()[1, 2], 1.0)

    def test_get_returns_copy(self):
        trace = Trace(2, 0.5)
        z = trace.get()
        z[0] = 10.0
        self.assertEqual(trace.weights[0], 0.0)

    def test_handle_terminal_resets_and_steps(self):
        trace = Trace(2, Parameter.exponential(0.8, 0.5))
        trace.update(np.array([1.0, 2.0]))
        trace.handle_terminal()
        np.testing.assert_array_equal(trace.get(), [0.0, 0.0])
        self.assertAlmostEqual(trace.lambda_, 0.4)

    def test_shape_mismatch(self):
        trace = Trace(2, 0.5)
        with self.assertRaises(ValueError):
            trace.update(np.ones(3))


if __name__ == "__main__":
    unittest.main()
