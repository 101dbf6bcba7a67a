from .config import ColonyConfig
from .data import Dataset, FeatureSchema
from .encoding import decode, is_selected
from .rules import Rule, build_rules, prune_rules, simplify_rules
from .fitness import Solution, RuleEvaluator, WORST_COST
from .pareto import ParetoArchive, dominates, crowding_distances, non_dominated_fronts
from .adaptive import AdaptiveController, population_diversity
from .colony import ColonyEngine
from .discretization import Discretizer
from .selection import FeatureSelector
from .evaluation import evaluate_rules, cross_validate
from .model import ColonyRuleSet

__all__ = [
    'ColonyConfig', 'Dataset', 'FeatureSchema', 'decode', 'is_selected',
    'Rule', 'build_rules', 'prune_rules', 'simplify_rules',
    'Solution', 'RuleEvaluator', 'WORST_COST',
    'ParetoArchive', 'dominates', 'crowding_distances', 'non_dominated_fronts',
    'AdaptiveController', 'population_diversity', 'ColonyEngine',
    'Discretizer', 'FeatureSelector', 'evaluate_rules', 'cross_validate',
    'ColonyRuleSet',
]
