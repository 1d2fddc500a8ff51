import numpy as np
import casadi as cs

# utils functions
def rot2d(theta):
    """
    Rotation matrix from the body frame to the inertial frame.
    :param theta: pitch angle, float or CasADi MX
    :return: 2x2 numpy array or CasADi MX
    """
    if isinstance(theta, (cs.MX, cs.SX)):
        return cs.vertcat(
            cs.horzcat(cs.cos(theta), -cs.sin(theta)),
            cs.horzcat(cs.sin(theta), cs.cos(theta)))

    return np.array([[np.cos(theta), -np.sin(theta)],
                     [np.sin(theta), np.cos(theta)]])

def v_dot_rot(v, theta):
    """
    Rotates a 2D body frame vector into the inertial frame.
    :param v: 2-element numpy array or CasADi MX
    :param theta: pitch angle
    :return: the rotated vector with the same data format as v
    """
    rot_mat = rot2d(theta)
    if isinstance(v, np.ndarray):
        return rot_mat.dot(v)

    return cs.mtimes(rot_mat, v)

def check_vector(v, dim, name):
    """
    Validates a state or control like input.
    :return: a float numpy copy of v with shape (dim,)
    """
    v = np.asarray(v, dtype=float)
    if v.size != dim:
        raise ValueError("%s must have %d components, got %d" % (name, dim, v.size))
    v = v.reshape(dim).copy()
    if not np.all(np.isfinite(v)):
        raise ValueError("%s must be finite, got %s" % (name, v))
    return v

def check_horizon(dt, N):
    if isinstance(N, bool) or not isinstance(N, (int, float, np.integer, np.floating)) \
            or not np.isfinite(N) or int(N) != N or N < 1:
        raise ValueError("horizon length N must be a positive integer, got %r" % (N,))
    if isinstance(dt, bool) or not isinstance(dt, (int, float, np.integer, np.floating)) \
            or not np.isfinite(dt) or dt <= 0:
        raise ValueError("step size dt must be positive, got %r" % (dt,))
    return float(dt), int(N)

def discretize_dynamics_and_cost(dt, X, u, dynamics_f, cost_f=None):
    """
    Integrates the symbolic dynamics and the stage cost over one step using forward Euler.
    :param dt: step size in seconds
    :param X: symbolic state vector
    :param u: symbolic control vector
    :param dynamics_f: symbolic dynamics function written in CasADi symbolic syntax.
    :param cost_f: symbolic cost function written in CasADi symbolic syntax. If None, then cost 0 is returned.
    :return: a symbolic function that computes the state after one step and the stage cost
    given an initial state and control
    """
    X_out = X + dt * dynamics_f(X=X, u=u)['X_dot']
    q = cs.MX(0) if cost_f is None else cost_f(X=X, u=u)['q']

    return cs.Function('F', [X, u], [X_out, q], ['X0', 'p'], ['Xf', 'qf'])
