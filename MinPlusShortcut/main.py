import argparse

import MinPlusShortcut.utils as utils
from MinPlusShortcut.baseline import shortcut_baseline
from MinPlusShortcut.core import BACKENDS, DEFAULT_BACKEND, shortcut_dense, shortcut_parallel
from MinPlusShortcut.decorators import cpu_timer
from MinPlusShortcut.kernels import DEFAULT_BLOCK_SIZE

N = 200
k = 10
seed = 1


def build_parser():
    parser = argparse.ArgumentParser(description="(min, +) 捷径矩阵：基线与并行引擎对比")
    parser.add_argument('-n', '--size', type=int, default=N, help="矩阵阶数")
    parser.add_argument('--seed', type=int, default=seed)
    parser.add_argument('--graph', choices=('random', 'knn'), default='random',
                        help="random: [0,1) 随机方阵; knn: k-近邻有向图的距离矩阵")
    parser.add_argument('-k', '--neighbors', type=int, default=k, help="knn 图的出度")
    parser.add_argument('--workers', type=int, default=None, help="默认为 CPU 核数")
    parser.add_argument('--backend', choices=BACKENDS, default=DEFAULT_BACKEND)
    parser.add_argument('--block-size', type=int, default=DEFAULT_BLOCK_SIZE)
    parser.add_argument('--no-early-exit', action='store_true')
    parser.add_argument('--dense', action='store_true', help="同时运行稠密 torch 引擎")
    parser.add_argument('--skip-baseline', action='store_true', help="阶数较大时跳过三重循环基线")
    parser.add_argument('-v', '--verbose', action='store_true')
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    if args.graph == 'knn':
        M = utils.create_base_network(args.size, min(args.neighbors, args.size - 1), args.seed)
    else:
        M = utils.create_random_matrix(args.size, args.seed)

    print("="*60)
    print(f"开始计算捷径矩阵 N={M.size} ({args.graph})")
    print("="*60)

    R_parallel = cpu_timer(shortcut_parallel)(
        M,
        workers=args.workers,
        early_exit=False if args.no_early_exit else None,
        backend=args.backend,
        block_size=args.block_size,
        verbose=args.verbose,
    )

    all_match = True
    if not args.skip_baseline:
        R_baseline = cpu_timer(shortcut_baseline)(M)
        match = R_baseline.allclose(R_parallel)
        print(f"基线与并行结果一致: {match}")
        all_match = all_match and match

    if args.dense:
        R_dense, _witness = cpu_timer(shortcut_dense)(M)
        match = R_dense.allclose(R_parallel)
        print(f"稠密与并行结果一致: {match}")
        all_match = all_match and match

    return 0 if all_match else 1


if __name__ == '__main__':
    raise SystemExit(main())
