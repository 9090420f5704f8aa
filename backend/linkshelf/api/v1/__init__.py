"""v1 路由模块"""
