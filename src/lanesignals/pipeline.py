"""
Conversion Pipeline Orchestrator

Turns a raw street graph into a simplified network with lanes and signal
plans:

  1. Resolve restriction relations
  2. Drop ways with missing nodes, mark used nodes
  3. Consolidate signals onto junctions
  4. Collapse pass-through nodes
  5. Cluster nearby junctions
  6. Materialize nodes and links
  7. Assign lanes and turns
  8. Synthesize signal phases
  9. Check consistency
"""

import json
import os
from typing import Any, Dict, Optional

from loguru import logger

from .config import ConverterConfig, get_config, validate_config
from .consistency import ConsistencyChecker
from .lanes import LaneAssigner
from .models import ConversionReport, ConversionResult
from .network import JunctionClusterer, SignalConsolidator, TopologyBuilder, UsageFilter
from .raw import OverpassParser, RawGraph
from .signals import PhaseSynthesizer


class NetworkConverter:
    """
    Main converter from a raw graph to a lane and signal network

    Usage:
        converter = NetworkConverter()
        result = converter.convert(graph)
        converter.save(result, "output/network.json")

    The raw graph is modified in place (flags, representatives); convert
    a fresh graph each time.
    """

    def __init__(self, config: Optional[ConverterConfig] = None):
        self.config = config or get_config()
        validate_config(self.config)

    def convert_overpass(self, data: Dict[str, Any]) -> ConversionResult:
        """Parse an Overpass JSON response and convert it"""
        parser = OverpassParser(target_crs=self.config.target_crs)
        return self.convert(parser.parse(data))

    def convert(self, graph: RawGraph) -> ConversionResult:
        """
        Run every conversion stage on a raw graph

        Args:
            graph: Raw nodes, ways and pending restriction relations

        Returns:
            ConversionResult with network, lane tables, signal systems and report

        Raises:
            UnexpectedJunctionError: strict mode and a signalized junction
                with more than four in-links
        """
        report = ConversionReport(
            nodes_read=len(graph.nodes),
            ways_read=len(graph.ways),
            signals_read=sum(1 for node in graph.nodes.values() if node.signalized),
        )
        logger.info(f"Converting {report.nodes_read} nodes and {report.ways_read} ways")

        # ============================================================
        # STAGE 1: Usage & Filtering
        # ============================================================

        report.incomplete_restrictions = graph.resolve_restrictions()
        usage = UsageFilter(self.config, report)
        usage.drop_ways_with_missing_nodes(graph)
        usage.mark_used(graph)

        # ============================================================
        # STAGE 2: Signals, path collapsing, clustering
        # ============================================================

        SignalConsolidator(self.config.signals, report).run(graph)
        usage.collapse_paths(graph)
        JunctionClusterer(self.config.clustering, report).run(graph)

        # ============================================================
        # STAGE 3: Topology
        # ============================================================

        topology = TopologyBuilder(self.config, report)
        network = topology.build(graph)

        # ============================================================
        # STAGE 4: Lanes and signal plans
        # ============================================================

        lanes = LaneAssigner(self.config.lanes, report).assign(
            network, topology.lane_stacks, topology.restrictions
        )
        systems = topology.signal_systems
        PhaseSynthesizer(self.config.timing, report, strict=self.config.strict).synthesize(
            network, lanes, systems
        )

        checker = ConsistencyChecker(network, lanes, systems, self.config.timing)
        report.consistency_issues = checker.check()

        report.log_summary()
        return ConversionResult(network=network, lanes=lanes, signal_systems=systems, report=report)

    def save(self, result: ConversionResult, output_path: str) -> str:
        """Save conversion result to JSON file"""
        os.makedirs(os.path.dirname(output_path) or ".", exist_ok=True)

        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(result.model_dump(mode="json"), f, indent=2, ensure_ascii=False)

        logger.info(f"Saved network to {output_path}")
        return output_path
