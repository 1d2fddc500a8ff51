import numpy as np
import casadi as cs
import config
from utils import v_dot_rot

STATE_DIM = 6   # [px, pz, theta, vx, vz, theta_dot]
CONTROL_DIM = 2 # [uF, uM]


def state_derivative(x, u, g=config.G):
    """
    Continuous time dynamics of the planar quadrotor.
    :param x: state [px, pz, theta, vx, vz, theta_dot]. numpy array or CasADi MX
    :param u: control [uF, uM] (net thrust, pitching moment)
    :param g: gravity acceleration
    :return: the state derivative with the same data type as x
    """
    theta, vx, vz, theta_dot = x[2], x[3], x[4], x[5]

    if isinstance(x, np.ndarray):
        sin, cos = np.sin, np.cos
        p_dot = v_dot_rot(np.array([vx, vz]), theta)
    else:
        sin, cos = cs.sin, cs.cos
        p_dot = v_dot_rot(cs.vertcat(vx, vz), theta)

    vx_dot = vz * theta_dot - g * sin(theta)
    vz_dot = -vx * theta_dot - g * cos(theta) + u[0]
    theta_ddot = u[1]

    if isinstance(x, np.ndarray):
        return np.array([p_dot[0], p_dot[1], theta_dot, vx_dot, vz_dot, theta_ddot])
    return cs.vertcat(p_dot, theta_dot, vx_dot, vz_dot, theta_ddot)


def dynamics(x, u, dt=1.0, g=config.G):
    """
    One forward Euler step, x_next = x + f(x, u) * dt.
    Returns a new state, the arguments are left untouched.
    """
    x = np.array(x, dtype=float).reshape(STATE_DIM)
    u = np.array(u, dtype=float).reshape(CONTROL_DIM)
    return x + state_derivative(x, u, g) * dt


def rollout(x0, u_seq, dt, g=config.G):
    """
    Open loop integration of a control sequence.
    :param x0: initial state (6,)
    :param u_seq: controls, array of size Tx2
    :return: state history, array of size (T+1)x6
    """
    u_seq = np.atleast_2d(np.asarray(u_seq, dtype=float))
    X = np.zeros((u_seq.shape[0] + 1, STATE_DIM))
    X[0, :] = x0
    for i in range(u_seq.shape[0]):
        X[i+1, :] = dynamics(X[i, :], u_seq[i, :], dt, g)
    return X


class PlanarQuad:
    """Simulated plant. Holds the true state and advances it with `dynamics`."""

    def __init__(self, x_init=None, g=config.G):
        self.g = g
        if x_init is None:
            x_init = np.zeros(STATE_DIM)
        self.x = np.array(x_init, dtype=float).reshape(STATE_DIM)
        self.u = np.zeros(CONTROL_DIM)

    def set_state(self, X_toSet):  # X_toSet = [px, pz, theta, vx, vz, theta_dot]
        self.x = np.array(X_toSet, dtype=float).reshape(STATE_DIM)

    def get_state(self):
        return self.x.copy()

    def get_control(self):
        return self.u.copy()

    def update(self, u, dt):
        self.u = np.array(u, dtype=float).reshape(CONTROL_DIM)
        self.x = dynamics(self.x, self.u, dt, self.g)
        return self.get_state()
