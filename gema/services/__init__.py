"""Namespace reserved for application services; it holds no modules yet."""