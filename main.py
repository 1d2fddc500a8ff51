import numpy as np
import config
from planarquad import PlanarQuad, rollout
from planarquadOCP import BoxLimits
from planarquadMPC import PlanarQuadMPC
from solver import IpoptSolver

""" open loop check of the dynamics: constant thrust from a small pitch """
dt = 0.1
t = np.arange(0, 1.0 + dt / 2, dt)
x0 = np.zeros(6)
x0[2] = -0.1
u_seq = np.column_stack((10.0 * np.ones_like(t), np.zeros_like(t)))
x_open = rollout(x0, u_seq, dt)
print("open loop final state:", x_open[-1])

""" set initial condition and limits """
x_init = np.array([1.0, 1.0, 0.0, 0.0, 0.0, 0.0])
x_ref = np.zeros(6)
limits = BoxLimits(config.THETA_LIM, config.THETA_DOT_LIM, config.VX_LIM, config.VZ_LIM)

""" initialize the MPC """
quad = PlanarQuad(x_init)
quadmpc = PlanarQuadMPC(quad, limits=limits, dt=config.DT, N_nodes=config.N_HORIZON,
                        solver=IpoptSolver(max_iter=config.MAX_ITER, print_level=config.PRINT_LEVEL),
                        fallback=config.FALLBACK, verbose=True)

""" start the simulation and save the results """
x, u = quadmpc.simulate(x_ref=x_ref, T=30)
print("statuses:", set(quadmpc.status_history))
np.savez('planar_quad_mpc.npz', x, u)
