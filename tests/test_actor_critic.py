import unittest

import numpy as np

from online_rl.actor_critic import DAC, TDAC, TDACLambda
from online_rl.algorithms import UnsupportedCapability, require_capabilities, supports_qs
from online_rl.approx import LinearFunction, TabularBasis
from online_rl.parameter import Parameter
from online_rl.policies import Dirac, EpsilonGreedy, Gibbs
from online_rl.prediction import TD
from online_rl.shared import make_shared
from online_rl.td_control import QLearning
from online_rl.types import Full, Terminal, Transition


def critic(alpha=0.5, gamma=0.9):
    return TD(LinearFunction(TabularBasis(2)), alpha, gamma)


def gibbs():
    return Gibbs(LinearFunction(TabularBasis(2), 2), seed=0)


class TestTDAC(unittest.TestCase):
    def test_td_error_taken_before_critic_update(self):
        agent = TDAC(critic(), gibbs(), 1.0, 0.9)
        agent.handle_transition(Transition(Full(0), 1, 1.0, Terminal(1)))
        self.assertAlmostEqual(agent.predict_v(0), 0.5)
        np.testing.assert_allclose(agent.weights(), [[-0.5, 0.5], [0.0, 0.0]])

    def test_bootstrapped_error(self):
        c = critic(alpha=0.0)
        c.v_func.W[1, 0] = 2.0
        agent = TDAC(c, gibbs(), 1.0, 0.5)
        self.assertAlmostEqual(agent.compute_td_error(Transition(Full(0), 0, 1.0, Full(1))), 2.0)
        self.assertAlmostEqual(agent.compute_td_error(Transition(Full(0), 0, 1.0, Terminal(1))), 1.0)

    def test_handle_terminal_forwards(self):
        c = TD(LinearFunction(TabularBasis(2)), Parameter.exponential(0.4, 0.5), 0.9)
        agent = TDAC(c, gibbs(), Parameter.exponential(0.2, 0.5), 0.9)
        agent.handle_terminal()
        self.assertAlmostEqual(agent.alpha.value, 0.1)
        self.assertAlmostEqual(c.alpha.value, 0.2)

    def test_on_policy_sampling(self):
        agent = TDAC(critic(), gibbs(), 0.1, 0.9)
        self.assertIn(agent.sample_target(0), (0, 1))
        self.assertIn(agent.sample_behaviour(0), (0, 1))

    def test_wiring_checks(self):
        with self.assertRaises(UnsupportedCapability):
            TDAC(object(), gibbs(), 0.1, 0.9)
        with self.assertRaises(UnsupportedCapability):
            TDAC(critic(), object(), 0.1, 0.9)

    def test_state_value_critic_has_no_action_values(self):
        agent = TDAC(critic(), gibbs(), 0.1, 0.9)
        self.assertFalse(supports_qs(agent))
        self.assertFalse(agent.try_predict_qs(0).ok)
        with self.assertRaises(UnsupportedCapability):
            agent.predict_qs(0)
        with self.assertRaises(UnsupportedCapability):
            require_capabilities(agent, "predict_qs")

    def test_action_values_come_from_critic(self):
        fa = LinearFunction(TabularBasis(2), 2)
        fa.W[1] = [0.5, 2.0]
        q = make_shared(fa)
        agent = TDAC(QLearning(q, EpsilonGreedy(q, 0.1, seed=0), 0.1, 0.9, seed=0), gibbs(), 0.1, 0.9)
        self.assertTrue(supports_qs(agent))
        np.testing.assert_allclose(agent.predict_qs(1), [0.5, 2.0])
        np.testing.assert_allclose(agent.try_predict_qs(1).unwrap(), [0.5, 2.0])
        self.assertEqual(agent.predict_qsa(1, 0), 0.5)


class TestTDACLambda(unittest.TestCase):
    def test_trace_over_log_gradient(self):
        c = critic(alpha=0.5, gamma=1.0)
        agent = TDACLambda(c, gibbs(), 1.0, 1.0, 0.5)
        self.assertEqual(agent.trace.get().shape, (2, 2))

        agent.handle_transition(Transition(Full(0), 1, 0.0, Full(1)))
        np.testing.assert_allclose(agent.trace.get(), [[-0.5, 0.5], [0.0, 0.0]])
        np.testing.assert_array_equal(agent.weights(), np.zeros((2, 2)))

        agent.handle_transition(Transition(Full(1), 0, 1.0, Terminal(0)))
        np.testing.assert_allclose(agent.weights(), [[-0.25, 0.25], [0.5, -0.5]])
        self.assertAlmostEqual(c.predict_v(1), 0.5)

    def test_handle_terminal_steps_lambda_and_resets(self):
        agent = TDACLambda(critic(), gibbs(), 0.1, Parameter.exponential(0.9, 0.5), Parameter.exponential(0.8, 0.5))
        agent.handle_transition(Transition(Full(0), 1, 0.0, Full(1)))
        agent.handle_terminal()
        np.testing.assert_array_equal(agent.trace.get(), np.zeros((2, 2)))
        self.assertAlmostEqual(agent.lambda_.value, 0.4)
        self.assertAlmostEqual(agent.gamma.value, 0.45)


class TestDAC(unittest.TestCase):
    def dirac(self):
        return Dirac(LinearFunction.scalar(TabularBasis(2)))

    def test_noise_free_behaviour_is_target(self):
        agent = DAC(critic(), self.dirac(), 0.1, 0.9, noise=0.0, seed=0)
        self.assertEqual(agent.sample_behaviour(0), agent.sample_target(0))

    def test_noisy_behaviour(self):
        agent = DAC(critic(), self.dirac(), 0.1, 0.9, noise=0.5, seed=0)
        action = agent.sample_behaviour(0)
        self.assertIsInstance(action, float)
        self.assertNotEqual(action, agent.sample_target(0))

    def test_actor_moves_toward_executed_action(self):
        policy = self.dirac()
        agent = DAC(critic(), policy, 0.5, 0.9, noise=0.1, seed=0)
        agent.handle_transition(Transition(Full(0), 1.0, 1.0, Terminal(1)))
        self.assertAlmostEqual(policy.mpa(0), 0.5)
        self.assertAlmostEqual(agent.predict_v(0), 0.5)

    def test_noise_anneals(self):
        agent = DAC(critic(), self.dirac(), 0.1, 0.9, noise=Parameter.exponential(0.4, 0.5))
        agent.handle_terminal()
        self.assertAlmostEqual(agent.noise.value, 0.2)
        with self.assertRaises(ValueError):
            DAC(critic(), self.dirac(), 0.1, 0.9, noise=-1.0)


if __name__ == "__main__":
    unittest.main()
