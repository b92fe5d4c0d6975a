"""
Detection core: scaling, geometry, image buffers, matching and orchestration
"""
