"""Command-line demonstration on a generated cubic network."""
import argparse
import logging

from pnmflow.logging_config import setup_logging
from pnmflow.model import Engine, FlowAxis, Fluid, Network, PermeabilityOptions
from pnmflow.permeability import calculate
from pnmflow.solvers.gpu import GpuContext


def main() -> None:
    parser = argparse.ArgumentParser(prog="pnmflow", description="Permeability of a generated cubic pore network.")
    parser.add_argument("--shape", type=int, nargs=3, default=(8, 8, 8), metavar=("NX", "NY", "NZ"))
    parser.add_argument("--voxel-size", type=float, default=2.0, help="voxel size in μm")
    parser.add_argument("--axis", choices=[a.value for a in FlowAxis], default=FlowAxis.Z.value)
    parser.add_argument("--fluid", choices=[f.name.lower() for f in Fluid], default="water")
    parser.add_argument("--confining-pressure", type=float, default=0.0, help="MPa")
    parser.add_argument("--gpu", action="store_true")
    parser.add_argument("--seed", type=int, default=0)
    parser.add_argument("--debug", action="store_true")
    args = parser.parse_args()

    logger = setup_logging(logging.DEBUG if args.debug else logging.INFO)

    network = Network.cubic(tuple(args.shape), voxel_size=args.voxel_size, radius_spread=0.3, seed=args.seed)
    options = PermeabilityOptions(
        engines=tuple(Engine),
        axis=FlowAxis(args.axis),
        use_gpu=args.gpu,
    ).with_fluid(Fluid[args.fluid.upper()])
    if args.confining_pressure > 0:
        options = options.with_confining_pressure(args.confining_pressure)

    context = GpuContext() if args.gpu else None
    try:
        results = calculate(network, options, gpu_context=context, logger=logger)
    finally:
        if context is not None:
            context.shutdown()

    print(results.summary())


if __name__ == "__main__":
    main()
