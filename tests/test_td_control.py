import unittest

import numpy as np

from online_rl.algorithms import UnsupportedCapability
from online_rl.approx import ApproximationError, ConstantBasis, LinearFunction, TabularBasis
from online_rl.parameter import Parameter
from online_rl.policies import EpsilonGreedy, Random
from online_rl.shared import make_shared
from online_rl.td_control import PAL, QLearning
from online_rl.types import Full, Terminal, Transition


def q_agent(q, cls=QLearning, alpha=0.1, gamma=0.9, **kwargs):
    q = make_shared(q)
    return cls(q, EpsilonGreedy(q, 0.1, seed=0), alpha, gamma, seed=0, **kwargs)


class NoIndexQ:
    """Evaluates Q(s, .) as a whole but cannot read or update a single action."""

    n_outputs = 2

    def embed(self, state):
        return np.ones(1)

    def evaluate(self, phi):
        return np.zeros(2)


class TestQLearning(unittest.TestCase):
    def test_terminal_scenario(self):
        fa = LinearFunction(ConstantBasis(1), 1)
        agent = q_agent(fa)
        agent.handle_transition(Transition(Full(0), 0, 1.0, Terminal(0)))
        self.assertAlmostEqual(fa.W[0, 0], 0.1)

    def test_bootstrapped_scenario(self):
        fa = LinearFunction(TabularBasis(2), 1)
        fa.W[1, 0] = 2.0
        agent = q_agent(fa)
        agent.handle_transition(Transition(Full(0), 0, 1.0, Full(1)))
        self.assertAlmostEqual(fa.W[0, 0], 0.28)

    def test_bootstraps_from_greedy_action(self):
        fa = LinearFunction(TabularBasis(2), 2)
        fa.W[1] = [1.0, 3.0]
        agent = q_agent(fa, alpha=1.0, gamma=1.0)
        agent.handle_transition(Transition(Full(0), 0, 0.0, Full(1)))
        self.assertAlmostEqual(fa.W[0, 0], 3.0)

    def test_target_sees_learned_weights(self):
        fa = LinearFunction(TabularBasis(1), 2)
        agent = q_agent(fa)
        agent.handle_transition(Transition(Full(0), 1, 1.0, Terminal(0)))
        self.assertEqual(agent.sample_target(0), 1)
        self.assertTrue(agent.target.q_func.ptr_eq(agent.q_func))
        self.assertTrue(agent.policy.q_func.ptr_eq(agent.q_func))
        self.assertEqual(agent.policy.mpa(0), 1)

    def test_predictions(self):
        fa = LinearFunction(TabularBasis(1), 2)
        fa.W[0] = [0.5, 2.0]
        agent = q_agent(fa)
        np.testing.assert_allclose(agent.predict_qs(0), [0.5, 2.0])
        self.assertEqual(agent.predict_qsa(0, 0), 0.5)
        self.assertEqual(agent.predict_v(0), 2.0)
        np.testing.assert_allclose(agent.weights(), [[0.5, 2.0]])

    def test_handle_terminal_anneals_everything_once(self):
        q = make_shared(LinearFunction(TabularBasis(1), 2))
        policy = EpsilonGreedy(q, Parameter.exponential(0.2, 0.5), seed=0)
        agent = QLearning(q, policy, Parameter.exponential(0.1, 0.5), Parameter.linear(0.9, 0.1))
        agent.handle_terminal()
        self.assertAlmostEqual(agent.alpha.value, 0.05)
        self.assertAlmostEqual(agent.gamma.value, 0.8)
        self.assertAlmostEqual(policy.epsilon.value, 0.1)

    def test_prediction_errors_propagate(self):
        fa = LinearFunction(TabularBasis(1), 2)
        agent = q_agent(fa)
        with self.assertRaises(ApproximationError):
            agent.predict_qsa(0, 5)
        np.testing.assert_array_equal(fa.W, np.zeros((1, 2)))

    def test_state_value_ignores_near_ties(self):
        fa = LinearFunction(TabularBasis(1), 2)
        fa.W[0] = [1.0, 1.0 + 5e-8]
        agent = q_agent(fa)
        values = {agent.predict_v(0) for _ in range(50)}
        self.assertEqual(values, {1.0 + 5e-8})

    def test_wiring_rejects_q_function_without_indexing(self):
        for q in (NoIndexQ(), make_shared(NoIndexQ())):
            with self.assertRaises(UnsupportedCapability):
                QLearning(q, Random(2), 0.1, 0.9)
            with self.assertRaises(UnsupportedCapability):
                PAL(q, Random(2), 0.1, 0.9)


class TestPAL(unittest.TestCase):
    def test_terminal_matches_q_learning(self):
        fa = LinearFunction(ConstantBasis(1), 1)
        agent = q_agent(fa, cls=PAL)
        agent.handle_transition(Transition(Full(0), 0, 1.0, Terminal(0)))
        self.assertAlmostEqual(fa.W[0, 0], 0.1)

    def test_persistent_target_wins(self):
        fa = LinearFunction(TabularBasis(2), 2)
        fa.W[0] = [1.0, 0.0]
        fa.W[1] = [0.0, 2.0]
        agent = q_agent(fa, cls=PAL, alpha=0.5, gamma=1.0)
        agent.handle_transition(Transition(Full(0), 1, 0.0, Full(1)))
        # td = 2, advantage target 1.5, persistent target 2
        self.assertAlmostEqual(fa.W[0, 1], 1.0)

    def test_advantage_target_wins(self):
        fa = LinearFunction(TabularBasis(2), 2)
        fa.W[0] = [0.0, 1.0]
        fa.W[1] = [0.0, 2.0]
        agent = q_agent(fa, cls=PAL, alpha=0.5, gamma=1.0)
        agent.handle_transition(Transition(Full(0), 0, 0.0, Full(1)))
        # td = 2, advantage target 1.5, persistent target 1
        self.assertAlmostEqual(fa.W[0, 0], 0.75)

    def test_explicit_gap_coefficient(self):
        fa = LinearFunction(TabularBasis(2), 2)
        fa.W[0] = [0.0, 1.0]
        fa.W[1] = [0.0, 2.0]
        agent = q_agent(fa, cls=PAL, alpha=0.5, gamma=1.0, kappa=Parameter.exponential(1.0, 0.5))
        agent.handle_transition(Transition(Full(0), 0, 0.0, Full(1)))
        self.assertAlmostEqual(fa.W[0, 0], 0.5)
        agent.handle_terminal()
        self.assertAlmostEqual(agent.gap_coefficient, 0.5)


if __name__ == "__main__":
    unittest.main()
