"""GitGuard - framework-aware .gitignore suggestions and risky file warnings"""

__version__ = "0.1.0"
