"""
(min, +) 捷径矩阵：R[i][j] = min_k { M[i][k] + M[k][j] }
"""
