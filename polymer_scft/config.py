# polymer_scft/config.py
# Solver parameters read from a YAML file
from dataclasses import dataclass, field
from typing import List

import yaml

from polymer_scft.core.block import Block
from polymer_scft.core.domain import Domain, GeometryMode, BoundaryCondition
from polymer_scft.errors import InvalidArgument
from polymer_scft.logging_config import resolve_level


@dataclass
class BlockConfig:
    length: float
    monomer_id: int = 0


@dataclass
class SolverConfig:
    """
    Parameters of the propagator solver.

    Example file:

        domain:
          x_min: 0.0
          x_max: 1.0
          nx: 11
          mode: planar          # planar | cylindrical | spherical
          boundary: reflecting  # reflecting | periodic
        chain:
          ds: 0.01
          kuhn: 1.0             # or diffusivity: 1.0
        blocks:
          - {length: 1.0, monomer_id: 0}
        logging:
          level: INFO
    """
    x_min: float = 0.0
    x_max: float = 1.0
    nx: int = 11
    mode: GeometryMode = GeometryMode.PLANAR
    boundary: BoundaryCondition = BoundaryCondition.REFLECTING
    ds: float = 0.01
    diffusivity: float = 1.0
    blocks: List[BlockConfig] = field(default_factory=lambda: [BlockConfig(1.0)])
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise InvalidArgument("Configuration must be a mapping")
        domain = data.get("domain") or {}
        chain = data.get("chain") or {}
        logging_section = data.get("logging") or {}

        if "kuhn" in chain and "diffusivity" in chain:
            raise InvalidArgument("Give either chain.kuhn or chain.diffusivity, not both")
        try:
            if "kuhn" in chain:
                diffusivity = float(chain["kuhn"]) ** 2 / 6.0
            else:
                diffusivity = float(chain.get("diffusivity", 1.0))

            blocks = [
                BlockConfig(float(b["length"]), int(b.get("monomer_id", 0)))
                for b in data.get("blocks", [{"length": 1.0}])
            ]
            config = cls(
                x_min=float(domain.get("x_min", 0.0)),
                x_max=float(domain.get("x_max", 1.0)),
                nx=int(domain.get("nx", 11)),
                mode=GeometryMode.parse(domain.get("mode", "planar")),
                boundary=BoundaryCondition.parse(domain.get("boundary", "reflecting")),
                ds=float(chain.get("ds", 0.01)),
                diffusivity=diffusivity,
                blocks=blocks,
                log_level=str(logging_section.get("level", "INFO")),
            )
        except InvalidArgument:
            raise
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidArgument(f"Invalid configuration: {exc}") from exc

        config.validate()
        return config

    def validate(self):
        if self.ds <= 0.0:
            raise InvalidArgument(f"chain.ds must be positive, got {self.ds}")
        if self.diffusivity <= 0.0:
            raise InvalidArgument(f"Diffusivity must be positive, got {self.diffusivity}")
        if not self.blocks:
            raise InvalidArgument("At least one block is required")
        for b in self.blocks:
            if b.length <= 0.0:
                raise InvalidArgument(f"Block length must be positive, got {b.length}")
        resolve_level(self.log_level)


def load_config(path):
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return SolverConfig.from_dict(data or {})


def build_domain(config):
    return Domain(config.x_min, config.x_max, config.nx, config.mode, config.boundary)


def build_blocks(config, domain):
    """Create and discretize one Block per configured block."""
    blocks = []
    for i, b in enumerate(config.blocks):
        block = Block(b.length, monomer_id=b.monomer_id, block_id=i, diffusivity=config.diffusivity)
        block.set_discretization(domain, config.ds)
        blocks.append(block)
    return blocks
