from query_builder.serialization.exporter import RulesExporter, is_blank_rule
from query_builder.serialization.importer import RulesImporter
from query_builder.serialization.schemas import GroupData, RuleData

__all__ = ["GroupData", "RuleData", "RulesExporter", "RulesImporter", "is_blank_rule"]
