import numpy as np
import config
import solver as nlp_solver
from planarquad import PlanarQuad, STATE_DIM, CONTROL_DIM
from planarquadOCP import PlanarQuadOpt, BoxLimits
from solver import IpoptSolver, SolverFailure, PersistentFailure
from utils import check_vector, check_horizon

FALLBACK_POLICIES = ('hold', 'zero', 'abort')


class Trajectory:
    """Predicted horizon of one control period, kept for diagnostics."""
    def __init__(self, X, U, result):
        self.X = X              # states, (N+1)x6
        self.U = U              # controls, Nx2
        self.result = result    # SolverResult


class PlanarQuadMPC:
    def __init__(self, quadrotor=None, limits=None, dt=config.DT, N_nodes=config.N_HORIZON,
                 solver=None, cost='position_sum', Q_cost=None, R_cost=None,
                 fallback=config.FALLBACK, abort_on_error=False,
                 max_consecutive_infeasible=config.MAX_CONSECUTIVE_INFEASIBLE,
                 warm_start=False, verbose=False):
        """
        :param quadrotor: PlanarQuad plant. A new one at rest is created if None
        :param limits: BoxLimits or (theta, theta_dot, vx, vz). None for unconstrained
        :param dt: control period and step size of the prediction model
        :param N_nodes: number of control nodes of MPC
        :param solver: object with a solve(nlp) method returning a SolverResult. IpoptSolver if None
        :param cost: objective of the horizon problem, see PlanarQuadOpt
        :param Q_cost: state cost for the tracking objective. A numpy array of size (6,)
        :param R_cost: control cost for the tracking objective. A numpy array of size (2,)
        :param fallback: control applied when a period fails, 'hold' the last applied control,
                         'zero' command or 'abort' the run
        :param abort_on_error: abort the run on a solver error even if a fallback control exists
        :param max_consecutive_infeasible: infeasible periods in a row before the run is aborted
        :param warm_start: seed each solve with the previous solution shifted by one node
        :param verbose: print one line per control period
        """
        if fallback not in FALLBACK_POLICIES:
            raise ValueError("fallback must be one of %s, got %r" % (FALLBACK_POLICIES, fallback))
        self.dt, self.N = check_horizon(dt, N_nodes)

        self.quad = PlanarQuad() if quadrotor is None else quadrotor
        self.limits = BoxLimits.from_tuple(limits)
        self.solver = IpoptSolver() if solver is None else solver
        self.quad_opt = PlanarQuadOpt(g=self.quad.g, cost=cost, Q_cost=Q_cost, R_cost=R_cost)

        self.fallback = fallback
        self.abort_on_error = abort_on_error
        self.max_consecutive_infeasible = max_consecutive_infeasible
        self.warm_start = warm_start
        self.verbose = verbose

        self.u_last = None
        self.w_prev = None
        self.status_history = []

    def get_state(self):
        return self.quad.get_state()

    def fallback_control(self):
        if self.fallback == 'hold' and self.u_last is not None:
            return self.u_last.copy()
        if self.fallback == 'abort':
            return None
        return np.zeros(CONTROL_DIM)

    def shifted_guess(self, nlp):
        """Previous solution shifted by one node, last node repeated."""
        if self.w_prev is None or self.w_prev[0] != nlp.N:
            return None
        X, U = nlp.unpack(self.w_prev[1])
        X = np.vstack((X[1:], X[-1:]))
        U = np.vstack((U[1:], U[-1:]))
        return nlp.pack(X, U)

    def solve_step(self, x0, x_ref=None, limits=None, dt=None, N=None):
        """
        One control period: transcribe, solve and extract the first control.
        :param x0: current state, 6 components
        :param x_ref: target state. Unused by the default objective
        :param limits: overrides the controller limits
        :param dt: overrides the controller step size
        :param N: overrides the controller horizon
        :return: u0, the control to apply (2,) and the predicted Trajectory
        :raises SolverFailure: when the solver does not converge, carrying the fallback control
        """
        dt = self.dt if dt is None else dt
        N = self.N if N is None else N
        limits = self.limits if limits is None else limits
        dt, N = check_horizon(dt, N)
        x0 = check_vector(x0, STATE_DIM, 'x0')

        nlp = self.quad_opt.transcribe(x0, dt=dt, N=N, limits=limits, x_ref=x_ref)
        if self.warm_start:
            w0 = self.shifted_guess(nlp)
            if w0 is not None:
                nlp.w0 = w0

        result = self.solver.solve(nlp)
        if not result.success:
            raise SolverFailure(result.status, result, self.fallback_control())

        X, U = nlp.unpack(result.w)
        self.w_prev = (N, result.w)
        u0 = U[0, :].copy()
        # bound relaxation of the solver can leave the thrust a hair below zero
        u0[0] = max(u0[0], 0.0)
        return u0, Trajectory(X, U, result)

    def simulate(self, x_init=None, x_ref=None, T=30):
        """
        Closed loop simulation over T control periods.
        :param x_init: initial state of the plant. The current plant state if None
        :param x_ref: target state, passed to every solve
        :param T: number of control periods
        :return: states, array of size (T+1)x6 and applied controls, array of size Tx2
        :raises SolverFailure: when the fallback policy aborts the run
        :raises PersistentFailure: after max_consecutive_infeasible infeasible periods in a row
        """
        if isinstance(T, bool) or int(T) != T or T < 0:
            raise ValueError("number of periods T must be a non-negative integer, got %r" % (T,))
        T = int(T)
        if x_init is not None:
            self.quad.set_state(check_vector(x_init, STATE_DIM, 'x_init'))

        X_opt = np.zeros((T + 1, STATE_DIM))
        U_opt = np.zeros((T, CONTROL_DIM))
        self.status_history = []
        self.u_last = None
        self.w_prev = None
        n_infeasible = 0

        for i in range(T):
            x_now = self.get_state()
            try:
                u_opt, _ = self.solve_step(x_now, x_ref)
                status = nlp_solver.SUCCESS
                n_infeasible = 0
            except SolverFailure as e:
                status = e.status
                self.status_history.append(status)
                n_infeasible = n_infeasible + 1 if status == nlp_solver.INFEASIBLE else 0
                if self.max_consecutive_infeasible and n_infeasible >= self.max_consecutive_infeasible:
                    raise PersistentFailure(status, e.result, e.fallback) from e
                if e.fallback is None or (status == nlp_solver.ERROR and self.abort_on_error):
                    raise
                u_opt = e.fallback
                self.w_prev = None
            else:
                self.status_history.append(status)

            x_next = self.quad.update(u_opt, self.dt)  # execute the first u
            self.u_last = self.quad.get_control()
            X_opt[i, :] = x_now
            U_opt[i, :] = self.u_last
            if self.verbose:
                print("t = %d, status = %s, u = %s, x = %s" % (i + 1, status, self.u_last, x_next))

        X_opt[T, :] = self.get_state()
        return X_opt, U_opt
