import numpy as np
import casadi as cs
import pytest
from planarquad import rollout
from planarquadOCP import PlanarQuadOpt, BoxLimits

LIMITS = (np.pi / 4, np.pi / 3, 2.0, 1.0)
X0 = np.array([1.0, 1.0, 0.0, 0.0, 0.0, 0.0])


def evaluate(nlp, w):
    f = cs.Function('nlp_eval', [nlp.prob['x']], [nlp.prob['f'], nlp.prob['g']])
    J, g = f(w)
    return float(J), g.full().flatten()


@pytest.mark.parametrize("N", [1, 5, 10])
def test_transcription_sizing(N):
    nlp = PlanarQuadOpt().transcribe(X0, dt=0.1, N=N, limits=LIMITS)
    assert nlp.n_equalities == 6 * (N + 1)
    assert nlp.n_variables == 6 * (N + 1) + 2 * N
    assert nlp.prob['x'].shape == (6 * (N + 1) + 2 * N, 1)
    assert nlp.prob['g'].shape == (6 * (N + 1), 1)
    assert len(nlp.w0) == nlp.n_variables
    assert nlp.lbg == [0.0] * nlp.n_equalities
    assert nlp.ubg == [0.0] * nlp.n_equalities


def test_thrust_lower_bound_never_negative():
    nlp = PlanarQuadOpt().transcribe(X0, dt=0.1, N=10, limits=LIMITS)
    for k in range(10):
        idx = nlp.control_index(k)
        lb_F, lb_M = nlp.lbw[idx]
        ub_F, ub_M = nlp.ubw[idx]
        assert lb_F == 0.0
        assert ub_F == np.inf
        assert lb_M == -np.inf
        assert ub_M == np.inf


def test_state_box_bounds():
    nlp = PlanarQuadOpt().transcribe(X0, dt=0.1, N=4, limits=LIMITS)
    for k in range(5):
        idx = nlp.state_index(k)
        assert nlp.ubw[idx] == [np.inf, np.inf, np.pi / 4, 2.0, 1.0, np.pi / 3]
        assert nlp.lbw[idx] == [-np.inf, -np.inf, -np.pi / 4, -2.0, -1.0, -np.pi / 3]


def test_unconstrained_limits_emit_no_bound():
    nlp = PlanarQuadOpt().transcribe(X0, dt=0.1, N=3, limits=(np.inf, 1.0, np.inf, np.inf))
    for k in range(4):
        idx = nlp.state_index(k)
        assert nlp.ubw[idx] == [np.inf, np.inf, np.inf, np.inf, np.inf, 1.0]
    nlp = PlanarQuadOpt().transcribe(X0, dt=0.1, N=3)
    assert all(np.isinf(b) for k in range(4) for b in nlp.ubw[nlp.state_index(k)])


@pytest.mark.parametrize("dt, N", [(0.1, 0), (0.1, -3), (0.1, 2.5), (0.1, float('inf')), (0.1, np.nan),
                                   (0.1, '10'), (0.0, 10), (-0.1, 10), (np.nan, 10), ('0.1', 10), (None, 10)])
def test_invalid_horizon_rejected(dt, N):
    with pytest.raises(ValueError):
        PlanarQuadOpt().transcribe(X0, dt=dt, N=N, limits=LIMITS)


def test_invalid_state_rejected():
    with pytest.raises(ValueError):
        PlanarQuadOpt().transcribe(np.zeros(5), dt=0.1, N=10)
    with pytest.raises(ValueError):
        PlanarQuadOpt().transcribe(X0, dt=0.1, N=10, x_ref=np.zeros(7))
    with pytest.raises(ValueError):
        PlanarQuadOpt().transcribe([0, 0, np.nan, 0, 0, 0], dt=0.1, N=10)


@pytest.mark.parametrize("limits", [(0.0, 1, 1, 1), (1, -1, 1, 1), (1, 1, np.nan, 1)])
def test_invalid_limits_rejected(limits):
    with pytest.raises(ValueError):
        BoxLimits.from_tuple(limits)


def test_constraints_vanish_on_model_rollout():
    N, dt = 6, 0.1
    opt = PlanarQuadOpt()
    nlp = opt.transcribe(X0, dt=dt, N=N, limits=LIMITS)
    U = np.column_stack((np.linspace(5.0, 12.0, N), np.linspace(-0.3, 0.3, N)))
    X = rollout(X0, U, dt)
    _, g = evaluate(nlp, nlp.pack(X, U))
    assert np.allclose(g, 0.0, atol=1e-12)

    # a different initial state breaks only the initial condition rows
    X[:, 0] += 0.5
    _, g = evaluate(nlp, nlp.pack(X, U))
    assert np.allclose(g[:6], [0.5, 0, 0, 0, 0, 0])
    assert np.allclose(g[6:], 0.0, atol=1e-12)


def test_position_sum_objective_ignores_reference():
    N = 4
    opt = PlanarQuadOpt()
    X = np.arange(6 * (N + 1), dtype=float).reshape(N + 1, 6) / 10.0
    U = np.ones((N, 2))
    nlp_a = opt.transcribe(X0, dt=0.1, N=N, x_ref=np.zeros(6))
    nlp_b = opt.transcribe(X0, dt=0.1, N=N, x_ref=np.ones(6) * 3.0)
    J_a, _ = evaluate(nlp_a, nlp_a.pack(X, U))
    J_b, _ = evaluate(nlp_b, nlp_b.pack(X, U))

    expected = sum(X[k, 0] + X[k, 1] for k in range(1, N + 1))
    assert J_a == pytest.approx(expected)
    assert J_b == pytest.approx(expected)


def test_tracking_objective_uses_reference():
    N = 3
    opt = PlanarQuadOpt(cost='tracking', Q_cost=np.ones(6), R_cost=np.zeros(2))
    x_ref = np.array([0.5, 0.5, 0, 0, 0, 0])
    nlp = opt.transcribe(X0, dt=0.1, N=N, x_ref=x_ref)
    X = np.tile(x_ref, (N + 1, 1))
    X[0] = X0
    J, _ = evaluate(nlp, nlp.pack(X, np.zeros((N, 2))))
    # node 0 is not penalized
    assert J == pytest.approx(0.0)


def test_unknown_cost_rejected():
    with pytest.raises(ValueError):
        PlanarQuadOpt(cost='minimum_time')


def test_pack_unpack():
    N = 3
    nlp = PlanarQuadOpt().transcribe(X0, dt=0.1, N=N)
    X = np.random.RandomState(1).rand(N + 1, 6)
    U = np.random.RandomState(2).rand(N, 2)
    X_u, U_u = nlp.unpack(nlp.pack(X, U))
    assert np.array_equal(X, X_u)
    assert np.array_equal(U, U_u)


def test_initial_guess_from_state_and_hover():
    nlp = PlanarQuadOpt(g=9.81).transcribe(X0, dt=0.1, N=5)
    X, U = nlp.unpack(nlp.w0)
    assert np.allclose(X, np.tile(X0, (6, 1)))
    assert np.allclose(U, np.tile([9.81, 0.0], (5, 1)))
    with pytest.raises(ValueError):
        PlanarQuadOpt().transcribe(X0, dt=0.1, N=5, w0=[0.0] * 3)
