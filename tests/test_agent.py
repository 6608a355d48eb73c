"""Tests for agents - reset, move, history and the rigid-body model."""

import logging

import numpy as np
import pytest
from numpy.testing import assert_allclose, assert_array_equal

from rigidsim.agents import (
    Agent,
    AgentConfig,
    AgentModel,
    RigidBodySE3Model,
    current_state,
    rigid_body_agent_se3,
)
from rigidsim.control import StateFeedbackController, TrackingGains
from rigidsim.dynamics import IntegrationResult, RigidBodyParams, time_grid
from rigidsim.dynamics.so3 import orthonormality_error, skew, so3_exp


def rotation_z(angle: float) -> np.ndarray:
    c, s = np.cos(angle), np.sin(angle)
    return np.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]])


@pytest.fixture
def agent():
    """Unit-mass body with asymmetric inertia and gravity on."""
    return rigid_body_agent_se3(mass=1.0, inertia=np.diag([1.0, 2.0, 3.0]))


@pytest.fixture
def weightless_agent():
    return rigid_body_agent_se3(mass=1.0, inertia=np.diag([1.0, 2.0, 3.0]), gravity_on=False)


def zero_reference(duration: float = 1.0):
    return np.array([0.0, duration]), np.zeros((2, 6))


class PointMassModel(AgentModel):
    """Double integrator on a line, without attitude."""

    n_states = 2
    n_inputs = 1
    position_indices = slice(0, 1)

    def default_state(self):
        return np.zeros(2)

    def dynamics(self, t, z, R, T_ref, U_ref, Z_ref=None, control=None):
        U = control(t, z, T_ref, U_ref, Z_ref)
        return np.array([z[1], U[0]])

    def integrate(self, fun, tspan, z0, R0, config):
        tout = time_grid(tspan, config.integrator_time_discretization)
        yout = np.empty((tout.size, z0.size))
        yout[0] = z0
        for k in range(1, tout.size):
            h = tout[k] - tout[k - 1]
            yout[k] = yout[k - 1] + h * fun(float(tout[k - 1]), yout[k - 1].copy(), None)
        return IntegrationResult(time=tout, state=yout, attitude=None)


# =============================================================================
# Construction and Reset
# =============================================================================

class TestReset:
    """Test agent construction and reset."""

    def test_initial_history(self, agent):
        """A new agent holds one sample at the origin, at rest, unrotated."""
        assert len(agent) == 1
        assert_array_equal(agent.time, [0.0])
        assert_array_equal(agent.state, np.zeros((1, 9)))
        assert_array_equal(agent.attitude, np.eye(3).reshape(1, 3, 3))

    def test_reset_from_position(self, agent):
        agent.reset(np.array([1.0, 2.0, 3.0]))
        assert_array_equal(agent.state[0], [1.0, 2.0, 3.0, 0, 0, 0, 0, 0, 0])

    def test_reset_from_full_state(self, agent):
        z0 = np.arange(9, dtype=np.float64)
        agent.reset(z0, rotation_z(0.3))
        assert_array_equal(agent.state[0], z0)
        assert_allclose(agent.attitude[0], rotation_z(0.3))

    def test_reset_discards_history(self, agent):
        T_ref, U_ref = zero_reference()
        agent.move(1.0, T_ref, U_ref)
        agent.reset()
        assert len(agent) == 1
        assert_array_equal(agent.time, [0.0])

    def test_reset_rejects_bad_position(self, agent):
        with pytest.raises(ValueError, match="Expected a position"):
            agent.reset(np.zeros(4))

    def test_reset_rejects_non_rotation(self, agent):
        with pytest.raises(ValueError, match="rotation matrix"):
            agent.reset(np.zeros(3), 2.0 * np.eye(3))

    def test_singular_inertia(self):
        with pytest.raises(ValueError, match="invertible"):
            rigid_body_agent_se3(mass=1.0, inertia=np.zeros((3, 3)))

    def test_bad_time_step(self):
        with pytest.raises(ValueError, match="positive"):
            AgentConfig(integrator_time_discretization=0.0)

    def test_controller_is_set_up(self, agent):
        assert agent.controller.is_setup
        assert agent.controller.n_agent_states == 9
        assert agent.controller.n_agent_inputs == 6


# =============================================================================
# Move
# =============================================================================

class TestMove:
    """Test executing reference trajectories."""

    def test_rest_is_equilibrium(self, weightless_agent):
        """Zero input and no gravity leaves the body at rest."""
        T_ref, U_ref = zero_reference(2.0)
        weightless_agent.move(2.0, T_ref, U_ref)
        assert_array_equal(weightless_agent.state, np.zeros((41, 9)))
        for R in weightless_agent.attitude:
            assert_allclose(R, np.eye(3), atol=1e-12)

    def test_free_fall(self, agent):
        """Euler free fall: p_N = -g h^2 N (N - 1) / 2."""
        agent.reset(np.zeros(3))
        T_ref, U_ref = zero_reference()
        agent.move(1.0, T_ref, U_ref)

        assert len(agent) == 21
        assert agent.time[-1] == 1.0
        assert_allclose(agent.state[-1, 2], -4.65975, atol=1e-10)
        assert_allclose(agent.state[-1, 5], -9.81, atol=1e-10)
        assert_allclose(agent.state[-1, 0:2], [0.0, 0.0], atol=0)

    def test_hover(self, agent):
        """Thrust equal to gravity holds altitude."""
        agent.reset(np.array([0.0, 0.0, 10.0]))
        T_ref = np.array([0.0, 2.0])
        U_ref = np.tile([0.0, 0.0, 9.81, 0.0, 0.0, 0.0], (2, 1))
        agent.move(2.0, T_ref, U_ref)
        assert_allclose(agent.state[-1, 0:6], [0.0, 0.0, 10.0, 0.0, 0.0, 0.0], atol=1e-10)

    def test_zero_duration_move(self, agent):
        T_ref, U_ref = zero_reference()
        agent.move(0.0, T_ref, U_ref)
        assert len(agent) == 1
        assert_array_equal(agent.input_time, [0.0])

    def test_negative_duration(self, agent):
        T_ref, U_ref = zero_reference()
        with pytest.raises(ValueError, match="non-negative"):
            agent.move(-1.0, T_ref, U_ref)

    def test_consecutive_moves_continue(self, agent):
        """A second move starts from where the first ended."""
        T_ref, U_ref = zero_reference()
        agent.move(1.0, T_ref, U_ref)
        mid_state = np.array(agent.state[-1])
        agent.move(1.0, T_ref, U_ref)

        assert len(agent) == 41
        assert agent.time[-1] == 2.0
        assert np.all(np.diff(agent.time) > 0)
        assert_array_equal(agent.state[20], mid_state)
        # Still falling: velocity keeps growing across the boundary
        assert_allclose(agent.state[-1, 5], -2.0 * 9.81, atol=1e-10)

    def test_two_moves_match_one(self, agent):
        """Splitting a move at a step boundary does not change the result."""
        T_ref = np.array([0.0, 2.0])
        U_ref = np.tile([0.5, 0.0, 0.0, 0.0, 0.0, 0.1], (2, 1))
        agent.move(2.0, T_ref, U_ref)
        single = np.array(agent.state)

        agent.reset()
        agent.move(1.0, np.array([0.0, 1.0]), U_ref)
        agent.move(1.0, np.array([0.0, 1.0]), U_ref)
        assert_allclose(agent.state, single, atol=1e-12)

    def test_attitude_stays_on_so3(self, agent):
        """Tumbling with asymmetric inertia keeps every attitude orthonormal."""
        agent.reset(np.array([0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 1.0, 0.2, -0.5]))
        T_ref = np.array([0.0, 10.0])
        U_ref = np.tile([0.0, 0.0, 9.81, 0.05, -0.1, 0.2], (2, 1))
        agent.move(10.0, T_ref, U_ref)
        for R in agent.attitude:
            assert orthonormality_error(np.array(R)) < 1e-6
            assert np.linalg.det(R) > 0

    def test_constant_spin_closed_form(self):
        """Gyroscopic moment cancelled: attitude follows expm(t skew(w))."""
        J = np.diag([1.0, 2.0, 3.0])
        omega = np.array([0.3, -0.2, 0.5])
        moment = np.cross(omega, J @ omega)
        agent = rigid_body_agent_se3(mass=1.0, inertia=J, gravity_on=False)
        agent.reset(np.concatenate([np.zeros(6), omega]))

        T_ref = np.array([0.0, 2.0])
        U_ref = np.tile(np.concatenate([np.zeros(3), moment]), (2, 1))
        agent.move(2.0, T_ref, U_ref)

        assert_allclose(agent.state[-1, 6:9], omega, atol=1e-12)
        assert_allclose(agent.attitude[-1], so3_exp(2.0 * skew(omega)), atol=1e-9)

    def test_history_is_read_only(self, agent):
        """Arrays handed to readers cannot write back into history."""
        T_ref, U_ref = zero_reference()
        agent.move(1.0, T_ref, U_ref)
        with pytest.raises(ValueError):
            agent.state[0, 0] = 100.0
        with pytest.raises(ValueError):
            agent.attitude[0, 0, 0] = 100.0
        assert agent.state[0, 0] == 0.0

    def test_custom_time_step(self):
        config = AgentConfig(integrator_time_discretization=0.1)
        agent = rigid_body_agent_se3(mass=1.0, inertia=np.eye(3), config=config)
        T_ref, U_ref = zero_reference()
        agent.move(1.0, T_ref, U_ref)
        assert len(agent) == 11


# =============================================================================
# Move Setup
# =============================================================================

class TestMoveSetup:
    """Test reference trajectory resolution."""

    def test_cut_between_knots(self, agent):
        T_ref = np.array([0.0, 1.0, 2.0])
        U_ref = np.array([
            [0.0, 0.0, 0.0, 0.0, 0.0, 0.0],
            [1.0, 0.0, 0.0, 0.0, 0.0, 0.0],
            [3.0, 0.0, 0.0, 0.0, 0.0, 0.0],
        ])
        T_used, U_used, Z_used = agent.move_setup(1.5, T_ref, U_ref)
        assert_array_equal(T_used, [0.0, 1.0, 1.5])
        assert_allclose(U_used[:, 0], [0.0, 1.0, 2.0])
        assert Z_used is None

    def test_cut_at_knot(self, agent):
        T_ref = np.array([0.0, 1.0, 2.0])
        U_ref = np.ones((3, 6))
        T_used, U_used, _ = agent.move_setup(1.0, T_ref, U_ref)
        assert_array_equal(T_used, [0.0, 1.0])
        assert U_used.shape == (2, 6)

    def test_short_reference_padded(self, agent, caplog):
        """A reference ending early is padded with zero input and a warning."""
        T_ref = np.array([0.0, 1.0])
        U_ref = np.ones((2, 6))
        Z_ref = np.tile(np.arange(9, dtype=np.float64), (2, 1))

        with caplog.at_level(logging.WARNING, logger="rigidsim.agents.agent"):
            T_used, U_used, Z_used = agent.move_setup(2.0, T_ref, U_ref, Z_ref)

        assert "padding" in caplog.text
        assert_array_equal(T_used, [0.0, 1.0, 2.0])
        assert_array_equal(U_used[-1], np.zeros(6))
        assert_array_equal(Z_used[-1], Z_ref[-1])

    def test_reference_starting_late(self, agent):
        with pytest.raises(ValueError, match="start at or before"):
            agent.move_setup(1.0, np.array([0.5, 1.0]), np.zeros((2, 6)))

    def test_wrong_input_width(self, agent):
        with pytest.raises(ValueError, match="Reference inputs must be shape"):
            agent.move_setup(1.0, np.array([0.0, 1.0]), np.zeros((2, 5)))

    def test_wrong_desired_state_width(self, agent):
        with pytest.raises(ValueError, match="Desired states must be shape"):
            agent.move_setup(1.0, np.array([0.0, 1.0]), np.zeros((2, 6)), np.zeros((2, 8)))

    def test_non_increasing_reference(self, agent):
        with pytest.raises(ValueError, match="strictly increasing"):
            agent.move(1.0, np.array([0.0, 0.0]), np.zeros((2, 6)))


# =============================================================================
# Read Access
# =============================================================================

class TestReadAccess:
    """Test history queries."""

    def test_input_history(self, agent):
        """Inputs are recorded at reference knots after time 0."""
        T_ref = np.array([0.0, 0.5, 1.0])
        U_ref = np.tile([0.0, 0.0, 9.81, 0.0, 0.0, 0.0], (3, 1))
        agent.move(1.0, T_ref, U_ref)
        agent.move(1.0, T_ref, U_ref)
        assert_allclose(agent.input_time, [0.0, 0.5, 1.0, 1.5, 2.0])
        assert agent.input.shape == (5, 6)
        assert_array_equal(agent.input[0], np.zeros(6))
        assert_allclose(agent.input[1:, 2], 9.81)

    def test_state_at_time(self, agent):
        T_ref, U_ref = zero_reference()
        agent.move(1.0, T_ref, U_ref)
        assert_allclose(agent.state_at_time(0.5), agent.state[10], atol=1e-12)
        assert_allclose(
            agent.state_at_time(0.525), 0.5 * (agent.state[10] + agent.state[11]), atol=1e-12
        )

    def test_state_at_time_out_of_range(self, agent):
        T_ref, U_ref = zero_reference()
        agent.move(1.0, T_ref, U_ref)
        with pytest.raises(ValueError, match="outside"):
            agent.state_at_time(5.0)

    def test_attitude_at_time(self, weightless_agent):
        """Attitude is exact at samples and follows the spin between them."""
        rate = 0.5
        weightless_agent.reset(np.array([0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, rate]))
        T_ref, U_ref = zero_reference()
        weightless_agent.move(1.0, T_ref, U_ref)

        assert_allclose(
            weightless_agent.attitude_at_time(0.5), weightless_agent.attitude[10], atol=1e-12
        )
        assert_allclose(weightless_agent.attitude_at_time(0.52), rotation_z(rate * 0.52), atol=1e-9)

    def test_attitude_at_time_out_of_range(self, agent):
        with pytest.raises(ValueError, match="outside"):
            agent.attitude_at_time(1.0)

    def test_to_dataframe(self, agent):
        T_ref, U_ref = zero_reference()
        agent.move(1.0, T_ref, U_ref)
        df = agent.snapshot().to_dataframe()
        assert df.shape == (21, 10)
        assert df.columns[0] == "time"
        assert df["z2"][-1] == pytest.approx(-4.65975)

    def test_current_state(self, agent):
        agent.reset(np.array([1.0, 2.0, 3.0]))
        T_ref, U_ref = zero_reference()
        agent.move(1.0, T_ref, U_ref)
        state = current_state(agent)
        assert state.time == 1.0
        assert_allclose(state.position, [1.0, 2.0, 3.0 - 4.65975], atol=1e-10)
        assert_allclose(state.velocity, [0.0, 0.0, -9.81], atol=1e-10)
        assert_allclose(state.attitude, np.eye(3), atol=1e-12)

    def test_snapshot_is_a_copy(self, agent):
        snapshot = agent.snapshot()
        T_ref, U_ref = zero_reference()
        agent.move(1.0, T_ref, U_ref)
        assert len(snapshot) == 1
        assert len(agent) == 21


# =============================================================================
# Feedback and Generic Models
# =============================================================================

class TestFeedbackTracking:
    """Test closed-loop moves with desired states."""

    def test_tracks_step(self):
        """Critically damped position loop converges to the setpoint."""
        controller = StateFeedbackController.from_tracking_gains(TrackingGains(kp=4.0, kd=4.0))
        agent = rigid_body_agent_se3(
            mass=1.0, inertia=np.eye(3), gravity_on=False, controller=controller
        )
        T_ref = np.array([0.0, 5.0])
        U_ref = np.zeros((2, 6))
        Z_ref = np.zeros((2, 9))
        Z_ref[:, 0:3] = [1.0, -2.0, 0.5]
        agent.move(5.0, T_ref, U_ref, Z_ref)

        assert np.linalg.norm(agent.state[-1, 0:3] - Z_ref[-1, 0:3]) < 0.05

    def test_feedforward_and_feedback_combine(self):
        """Gravity feedforward plus feedback holds hover at the setpoint."""
        controller = StateFeedbackController.from_tracking_gains(TrackingGains(kp=4.0, kd=4.0))
        agent = rigid_body_agent_se3(mass=1.0, inertia=np.eye(3), controller=controller)
        agent.reset(np.array([0.0, 0.0, 5.0]))
        T_ref = np.array([0.0, 3.0])
        U_ref = np.tile([0.0, 0.0, 9.81, 0.0, 0.0, 0.0], (2, 1))
        Z_ref = np.zeros((2, 9))
        Z_ref[:, 2] = 5.0
        agent.move(3.0, T_ref, U_ref, Z_ref)
        assert_allclose(agent.state[:, 2], 5.0, atol=1e-10)


class TestGenericAgent:
    """An Agent runs any AgentModel, with or without attitude."""

    @pytest.fixture
    def point_mass(self):
        return Agent(PointMassModel())

    def test_constant_acceleration(self, point_mass):
        point_mass.reset(np.array([3.0]))
        T_ref = np.array([0.0, 1.0])
        U_ref = np.array([[2.0], [2.0]])
        point_mass.move(1.0, T_ref, U_ref)

        assert len(point_mass) == 21
        assert_allclose(point_mass.state[-1], [3.0 + 2.0 * 0.0025 * 190, 2.0], atol=1e-12)
        assert point_mass.attitude is None

    def test_attitude_rejected(self, point_mass):
        with pytest.raises(ValueError, match="does not track attitude"):
            point_mass.reset(np.array([0.0]), np.eye(3))

    def test_attitude_at_time_unsupported(self, point_mass):
        with pytest.raises(NotImplementedError):
            point_mass.attitude_at_time(0.0)

    def test_rigid_body_model_reports_layout(self):
        model = RigidBodySE3Model(RigidBodyParams())
        agent = Agent(model)
        assert agent.n_states == 9
        assert agent.n_inputs == 6
        assert agent.position_indices == slice(0, 3)
        assert model.has_attitude


# =============================================================================
# Numeric Inputs
# =============================================================================

class TestNumericInputs:
    """Integer and single-precision arguments behave like float64 ones."""

    @pytest.fixture
    def pair(self):
        """The same body built from float64 and from int/float32 values."""
        reference = rigid_body_agent_se3(mass=1.0, inertia=np.diag([1.0, 2.0, 3.0]))
        other = rigid_body_agent_se3(mass=1, inertia=np.diag([1, 2, 3]).astype(np.float32), g=9.81)
        return reference, other

    def test_factory_accepts_ints(self):
        agent = rigid_body_agent_se3(mass=2, inertia=np.eye(3, dtype=int), g=10)
        agent.reset(np.array([0, 0, 1]))
        assert agent.state.dtype == np.float64
        assert_array_equal(agent.state[0], [0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0])

    def test_move_with_integer_reference(self, pair):
        reference, other = pair
        reference.reset(np.array([0.0, 0.0, 10.0]), rotation_z(0.0))
        other.reset(np.array([0, 0, 10]), np.eye(3, dtype=int))

        U_ref = np.zeros((2, 6), dtype=int)
        U_ref[:, 5] = 1
        reference.move(2.0, np.array([0.0, 2.0]), U_ref.astype(np.float64))
        other.move(2, np.array([0, 2]), U_ref)

        assert len(other) == 41
        assert other.time[-1] == 2.0
        assert_allclose(other.state, reference.state, atol=1e-10)
        assert_allclose(other.attitude, reference.attitude, atol=1e-10)

    def test_integer_desired_states(self, pair):
        _, other = pair
        T_used, U_used, Z_used = other.move_setup(
            1, np.array([0, 1, 2]), np.zeros((3, 6), dtype=int), np.zeros((3, 9), dtype=int)
        )
        assert_array_equal(T_used, [0.0, 1.0])
        assert U_used.dtype == np.float64
        assert Z_used.dtype == np.float64

    def test_integer_query_times(self, pair):
        _, other = pair
        other.move(2, np.array([0, 2]), np.zeros((2, 6), dtype=int))
        assert_allclose(other.state_at_time(1), other.state[20], atol=1e-12)
        assert_allclose(other.attitude_at_time(1), other.attitude[20], atol=1e-12)
