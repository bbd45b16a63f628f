from functools import wraps
import time

from MinPlusShortcut.matrix import SquareMatrix

# ============================================================
# 性能测试装饰器
# ============================================================

def cpu_timer(func):
    """
    CPU 性能测试装饰器
    测量：CPU执行时间、矩阵阶数
    执行时间（毫秒）记录在 wrapper.last_elapsed_ms 上
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        # 开始计时
        start_time = time.perf_counter()

        # 执行函数
        result = func(*args, **kwargs)

        # 结束计时
        end_time = time.perf_counter()

        # 计算执行时间（秒转毫秒）
        cpu_time = (end_time - start_time) * 1000
        wrapper.last_elapsed_ms = cpu_time

        # 打印性能报告
        print("\n" + "="*60)
        print(f"函数: {func.__name__}")
        print("="*60)
        print(f"CPU 执行时间: {cpu_time:.2f} ms ({cpu_time/1000:.4f} s)")

        # 返回值是矩阵（或以矩阵开头的元组）时附带阶数
        matrix = result[0] if isinstance(result, tuple) else result
        if isinstance(matrix, SquareMatrix):
            print(f"矩阵阶数: {matrix.size}")
        print("="*60 + "\n")
        return result

    wrapper.last_elapsed_ms = None
    return wrapper
