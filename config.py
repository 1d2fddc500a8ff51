import numpy as np

## Physical parameters
G = 9.81                     # gravity acceleration (m/s^2)

## Horizon
DT = 0.1                     # step size (s)
N_HORIZON = 10               # number of control nodes

## Box limits, np.inf means no bound is emitted
THETA_LIM = np.pi / 4        # pitch angle (rad)
THETA_DOT_LIM = np.pi / 3    # pitch rate (rad/s)
VX_LIM = 2.0                 # body velocity x (m/s)
VZ_LIM = 1.0                 # body velocity z (m/s)

## NLP solver options
MAX_ITER = 5000
PRINT_LEVEL = 0
MAX_WALL_TIME = None         # seconds, None for no deadline

## Closed loop
FALLBACK = 'hold'            # 'hold', 'zero' or 'abort'
MAX_CONSECUTIVE_INFEASIBLE = 3
