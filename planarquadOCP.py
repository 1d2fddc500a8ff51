import numpy as np
import casadi as cs
from dataclasses import dataclass
import config
from planarquad import STATE_DIM, CONTROL_DIM, state_derivative
from utils import check_vector, check_horizon, discretize_dynamics_and_cost


@dataclass
class BoxLimits:
    """
    Symmetric box limits on the state. np.inf means no bound is emitted.
    """
    theta: float = np.inf       # pitch angle
    theta_dot: float = np.inf   # pitch rate
    vx: float = np.inf          # body velocity x
    vz: float = np.inf          # body velocity z

    def __post_init__(self):
        for name in ('theta', 'theta_dot', 'vx', 'vz'):
            value = float(getattr(self, name))
            if np.isnan(value) or value <= 0:
                raise ValueError("limit %s must be positive or inf, got %r" % (name, value))
            setattr(self, name, value)

    @classmethod
    def from_tuple(cls, limits):
        """(theta, theta_dot, vx, vz)"""
        if isinstance(limits, cls):
            return limits
        if limits is None:
            return cls()
        return cls(*limits)

    def state_bounds(self):
        """Lower and upper bounds of one state node, ordered as the state vector."""
        ub = [np.inf, np.inf, self.theta, self.vx, self.vz, self.theta_dot]
        lb = [-b for b in ub]
        return lb, ub


class HorizonNLP:
    """
    A transcribed horizon problem, ready for casadi.nlpsol.
    Decision vector layout: X_0, U_0, X_1, U_1, ..., X_N
    """
    def __init__(self, N, dt, prob, w0, lbw, ubw, lbg, ubg):
        self.N = N
        self.dt = dt
        self.prob = prob
        self.w0 = w0
        self.lbw = lbw
        self.ubw = ubw
        self.lbg = lbg
        self.ubg = ubg

    @property
    def n_variables(self):
        return len(self.lbw)

    @property
    def n_equalities(self):
        return len(self.lbg)

    def state_index(self, k):
        i = k * (STATE_DIM + CONTROL_DIM)
        return slice(i, i + STATE_DIM)

    def control_index(self, k):
        i = k * (STATE_DIM + CONTROL_DIM) + STATE_DIM
        return slice(i, i + CONTROL_DIM)

    def unpack(self, w):
        """
        :param w: flat decision vector
        :return: states, array of size (N+1)x6 and controls, array of size Nx2
        """
        w = np.asarray(w, dtype=float).flatten()
        X = np.array([w[self.state_index(k)] for k in range(self.N + 1)])
        U = np.array([w[self.control_index(k)] for k in range(self.N)])
        return X, U

    def pack(self, X, U):
        w = []
        for k in range(self.N):
            w += list(X[k])
            w += list(U[k])
        w += list(X[self.N])
        return w


class PlanarQuadOpt:
    def __init__(self, g=config.G, cost='position_sum', Q_cost=None, R_cost=None, u_ref=None):
        """
        :param g: gravity acceleration used by the prediction model
        :param cost: 'position_sum' sums px + pz over nodes 1..N and ignores the reference,
                     'tracking' penalizes the quadratic deviation from the reference
        :param Q_cost: cost for state. A numpy array of size 6. None if use default
        :param R_cost: cost for controls. A numpy array of size 2. None if use default
        :param u_ref: reference control for the tracking cost. None for hover
        """
        if cost not in ('position_sum', 'tracking'):
            raise ValueError("unknown cost %r" % (cost,))
        self.g = g
        self.cost = cost

        self.Q = np.array([10.0, 10.0, 1.0, 0.5, 0.5, 0.1]) if Q_cost is None else np.asarray(Q_cost, dtype=float)
        self.R = np.array([0.01, 0.01]) if R_cost is None else np.asarray(R_cost, dtype=float)
        self.u_ref = np.array([g, 0.0]) if u_ref is None else np.asarray(u_ref, dtype=float)

        # Declare model variables, X = [px, pz, theta, vx, vz, theta_dot]
        self.X = cs.MX.sym('X', STATE_DIM)

        # Control input vector
        self.u = cs.MX.sym('u', CONTROL_DIM)    # [uF, uM]
        self.u_lb = [0.0, -np.inf]   # thrust can not be negative
        self.u_ub = [np.inf, np.inf]

        # Nominal model equations symbolic function
        self.quad_xdot_nominal = self.quad_dynamics()

    def quad_dynamics(self):
        """
        Symbolic dynamics of the planar quadrotor model.
        return: CasADi function that computes the analytical differential state dynamics.
        """
        X_dot = state_derivative(self.X, self.u, self.g)
        return cs.Function('X_dot', [self.X, self.u], [X_dot], ['X', 'u'], ['X_dot'])

    def cost_f(self):
        """
        Symbolic control stage cost, deviation from the reference control
        """
        u_e = self.u - cs.DM(self.u_ref)
        q = (cs.DM(self.R) * u_e).T @ u_e
        return cs.Function('q', [self.X, self.u], [q], ['X', 'u'], ['q'])

    def state_cost(self, Xk, X_ref):
        X_e = Xk - cs.DM(X_ref)
        return (cs.DM(self.Q) * X_e).T @ X_e

    def transcribe(self, x_init, dt=config.DT, N=config.N_HORIZON, limits=None, x_ref=None, w0=None):
        """
        Direct multiple shooting transcription of one control period.
        :param x_init: current state, 6 components
        :param dt: step size
        :param N: number of control nodes
        :param limits: BoxLimits or (theta, theta_dot, vx, vz). None for unconstrained
        :param x_ref: target state. Only used by the tracking cost
        :param w0: initial guess of the decision vector. None to start from x_init and hover
        :return: HorizonNLP
        """
        dt, N = check_horizon(dt, N)
        x_init = check_vector(x_init, STATE_DIM, 'x_init')
        x_ref = np.zeros(STATE_DIM) if x_ref is None else check_vector(x_ref, STATE_DIM, 'x_ref')
        limits = BoxLimits.from_tuple(limits)
        lbx, ubx = limits.state_bounds()

        F = discretize_dynamics_and_cost(dt, self.X, self.u, self.quad_xdot_nominal,
                                         self.cost_f() if self.cost == 'tracking' else None)

        # starting with an empty NLP
        w = []
        w_guess = []
        lbw = []
        ubw = []
        J = 0.0
        g = []
        lbg = []
        ubg = []

        # Lift initial conditions, bound through an equality constraint
        Xk = cs.MX.sym('X_0', STATE_DIM)
        w += [Xk]
        lbw += lbx
        ubw += ubx
        w_guess += list(x_init)

        g += [Xk - cs.DM(x_init)]
        lbg += [0.0] * STATE_DIM
        ubg += [0.0] * STATE_DIM

        # Formulate NLP
        for k in range(N):
            # New NLP variable for the control
            Uk = cs.MX.sym('U_' + str(k), CONTROL_DIM)
            w += [Uk]
            lbw += self.u_lb
            ubw += self.u_ub
            w_guess += [self.g, 0.0]

            # integrate till the end of the interval
            Fk = F(X0=Xk, p=Uk)
            Xk_end = Fk['Xf']
            J = J + Fk['qf']

            # New NLP variable for state at end of interval
            Xk = cs.MX.sym('X_' + str(k+1), STATE_DIM)
            w += [Xk]
            lbw += lbx
            ubw += ubx
            w_guess += list(x_init)

            # state cost over nodes 1..N
            if self.cost == 'position_sum':
                J = J + Xk[0] + Xk[1]
            else:
                J = J + self.state_cost(Xk, x_ref)

            # Add equality constraint
            g += [Xk_end - Xk]
            lbg += [0.0] * STATE_DIM
            ubg += [0.0] * STATE_DIM

        if w0 is None:
            w0 = w_guess
        elif len(w0) != len(w_guess):
            raise ValueError("initial guess must have %d components, got %d" % (len(w_guess), len(w0)))

        prob = {'f': J, 'x': cs.vertcat(*w), 'g': cs.vertcat(*g)}
        return HorizonNLP(N, dt, prob, list(w0), lbw, ubw, lbg, ubg)
