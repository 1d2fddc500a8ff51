import numpy as np
import casadi as cs
from time import time
import config

# solver outcome tags
SUCCESS = 'success'
MAX_ITER = 'max_iter'
INFEASIBLE = 'infeasible'
TIMEOUT = 'timeout'
ERROR = 'error'

# Ipopt return_status -> outcome tag
IPOPT_STATUS = {
    'Solve_Succeeded': SUCCESS,
    'Solved_To_Acceptable_Level': SUCCESS,
    'Maximum_Iterations_Exceeded': MAX_ITER,
    'Infeasible_Problem_Detected': INFEASIBLE,
    'Maximum_CpuTime_Exceeded': TIMEOUT,
    'Maximum_WallTime_Exceeded': TIMEOUT,
}


class SolverFailure(RuntimeError):
    """Raised by the controller when a period does not produce a usable solution."""

    def __init__(self, status, result=None, fallback=None):
        self.status = status
        self.result = result
        self.fallback = fallback
        message = "solver outcome '%s'" % status
        if result is not None and result.return_status:
            message += " (%s)" % result.return_status
        super().__init__(message)


class PersistentFailure(SolverFailure):
    """Raised by the closed loop when infeasibility repeats over consecutive periods."""


class SolverResult:
    def __init__(self, status, w=None, f=None, iterations=None,
                 return_status=None, solve_time=None):
        """
        :param status: one of SUCCESS, MAX_ITER, INFEASIBLE, TIMEOUT, ERROR
        :param w: primal solution, flat numpy array. None if the solver did not return one
        :param f: objective value
        :param iterations: number of solver iterations
        :param return_status: raw status string of the solver
        :param solve_time: wall clock seconds spent in the solver
        """
        self.status = status
        self.w = w
        self.f = f
        self.iterations = iterations
        self.return_status = return_status
        self.solve_time = solve_time

    @property
    def success(self):
        return self.status == SUCCESS


class IpoptSolver:
    def __init__(self, max_iter=config.MAX_ITER, print_level=config.PRINT_LEVEL,
                 max_wall_time=config.MAX_WALL_TIME, options=None):
        """
        :param max_iter: Ipopt iteration cap
        :param print_level: Ipopt verbosity, 0 is silent
        :param max_wall_time: deadline in seconds for one solve. None for no deadline
        :param options: extra Ipopt options, passed through unmodified
        """
        self.max_iter = max_iter
        self.print_level = print_level
        self.max_wall_time = max_wall_time
        self.options = options or {}

    def nlpsol_options(self):
        ipopt_opts = {'max_iter': self.max_iter, 'print_level': self.print_level}
        if self.max_wall_time is not None:
            ipopt_opts['max_wall_time'] = float(self.max_wall_time)
        ipopt_opts.update(self.options)

        opts = {'ipopt': ipopt_opts, 'error_on_fail': False}
        if self.print_level == 0:
            opts['print_time'] = False
            ipopt_opts.setdefault('sb', 'yes')
        return opts

    def solve(self, nlp):
        """
        Solve a transcribed horizon problem.
        :param nlp: HorizonNLP
        :return: SolverResult
        """
        t0 = time()
        try:
            solver = cs.nlpsol('solver', 'ipopt', nlp.prob, self.nlpsol_options())
            sol = solver(x0=nlp.w0, lbx=nlp.lbw, ubx=nlp.ubw, lbg=nlp.lbg, ubg=nlp.ubg)
        except RuntimeError as e:
            return SolverResult(ERROR, return_status=str(e), solve_time=time() - t0)
        solve_time = time() - t0

        stats = solver.stats()
        return_status = stats.get('return_status', '')
        status = IPOPT_STATUS.get(return_status, ERROR)
        if status == SUCCESS and self.max_wall_time is not None and solve_time > self.max_wall_time:
            status = TIMEOUT

        return SolverResult(status,
                            w=sol['x'].full().flatten(),
                            f=float(sol['f']),
                            iterations=stats.get('iter_count'),
                            return_status=return_status,
                            solve_time=solve_time)
