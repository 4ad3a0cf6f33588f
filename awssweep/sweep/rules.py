"""Loading of the declarative match configuration.

The configuration is a YAML mapping from resource type name to a rule::

    aws_instance:
      tags:
        env: ^dev$
    aws_iam_role:
      ids:
        - ^temp-
    aws_kms_alias:        # no criteria: sweep every alias

Types absent from the document are never swept.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Union

import yaml

from ..models.match_rule import MatchRule
from .errors import ConfigError

logger = logging.getLogger(__name__)


def parse_match_rules(data: Any) -> Dict[str, MatchRule]:
    """Build match rules from a decoded configuration document.

    Args:
        data: Decoded YAML document

    Returns:
        Dictionary of resource type name -> MatchRule, in document order

    Raises:
        ConfigError: If the document does not have the expected shape
    """
    if data is None:
        return {}

    if not isinstance(data, dict):
        raise ConfigError(f"Match configuration must be a mapping, got {type(data).__name__}")

    rules: Dict[str, MatchRule] = {}
    for resource_type, rule_data in data.items():
        if not isinstance(resource_type, str) or not resource_type:
            raise ConfigError(f"Invalid resource type key: {resource_type!r}")
        try:
            rules[resource_type] = MatchRule.from_dict(resource_type, rule_data)
        except ValueError as e:
            raise ConfigError(str(e)) from e

    logger.debug(f"Loaded {len(rules)} match rules")
    return rules


def load_match_rules(path: Union[str, Path]) -> Dict[str, MatchRule]:
    """Read and parse a match configuration file.

    Args:
        path: Path to the YAML document

    Returns:
        Dictionary of resource type name -> MatchRule

    Raises:
        ConfigError: If the file cannot be read or parsed
    """
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read match configuration {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Cannot parse match configuration {path}: {e}") from e

    return parse_match_rules(data)
