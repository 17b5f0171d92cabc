from build_resolver.index.rule_index import RuleIndex, RuleRecord, vendor_info

__all__ = ["RuleIndex", "RuleRecord", "vendor_info"]
