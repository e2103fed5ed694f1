"""SkillCerts e-learning marketplace backend"""

__version__ = "1.0.0"
