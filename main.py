import sys

import numpy as np
import matplotlib.pyplot as plt

from polymer_scft.config import load_config, build_domain, build_blocks
from polymer_scft.core.arrays import to_numpy
from polymer_scft.core.model import brush_height, wall_potential
from polymer_scft.logging_config import setup_logging

# System definition
config_file = sys.argv[1] if len(sys.argv) > 1 else "params.yaml"
config = load_config(config_file)
setup_logging(config.log_level)

domain = build_domain(config)
block = build_blocks(config, domain)[0]
x = to_numpy(domain.x)
dx = domain.dx

print("This chain in solution would have\nRg = ", np.sqrt(config.diffusivity * block.length))
print("ns = ", block.ns, " ds = ", block.ds)

# Set up forward propagator: chain end grafted next to the wall
q_forward_init = np.zeros_like(x)
q_forward_init[1] = 1 / domain.cell_volumes[1]

# Set up backward propagator: free end
q_backward_init = np.ones_like(x)

# =========================================
# Grafted chain in a soft wall potential
# =========================================
w = wall_potential(x, amplitude=5.0, decay_length=0.5, x_wall=domain.x_min)
block.setup_solver(w)
forward, reverse = block.solve(q_forward_init, q_backward_init)

# The partition function
Q = forward.compute_q()
print("Q = ", Q)

# The polymer density, normalized to one chain
rho_p = to_numpy(block.compute_concentration(1.0 / Q))
print("int rho(x) dx =", domain.spatial_integral(rho_p))
print("Expected = N =", block.length)
print("H = ", brush_height(rho_p, domain))

# -----------------
# Plot propagators and density
# -----------------
fig, ax = plt.subplots(ncols=2, figsize=(8, 3))
for i in range(0, block.ns + 1, max(block.ns // 4, 1)):
    ax[0].plot(x, forward.q(i), ":", label=f"q(x,{i * block.ds:.2f})")
ax[0].set_ylabel('q')
ax[0].set_xlabel('x')
ax[0].legend()

ax[1].plot(x, rho_p, "-", label='Polymer')
ax[1].plot(x, w / w.max() * rho_p.max(), "--", label='w (scaled)')
ax[1].set_ylabel('$\\rho$')
ax[1].set_xlabel('x')
ax[1].legend()
plt.tight_layout()
plt.show()
