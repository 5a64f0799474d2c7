import json
import logging
import sys

from ilot_designer.core.config import EngineSettings, PlacementConfig
from ilot_designer.core.plan_interpreter import PlanInterpreter
from ilot_designer.processor import LayoutProcessor
from ilot_designer.project.project_manager import ProjectManager

logger = logging.getLogger(__name__)


def run(input_data):
    floor_plan_data = input_data.get('floor_plan')
    if floor_plan_data is None:
        raise ValueError('Input JSON must include "floor_plan" data')

    options = input_data.get('options') or {}
    config = PlacementConfig.from_dict(options)
    settings = EngineSettings.from_dict(options.get('settings'))
    plan = PlanInterpreter().interpret(floor_plan_data)

    processor = LayoutProcessor(config, settings, seed=int(options.get('seed', 0)))
    result = processor.process(plan)

    output = ProjectManager().serialize_result(result, processor.config)
    output['success'] = True
    return output


def main():
    """
    Entry point for command-line usage. Expects JSON on stdin with:
    {
        "floor_plan": {...},
        "options": {"layoutProfile": 25, "seed": 0, "settings": {...}, ...}
    }
    and writes the layout as JSON on stdout. Logs go to stderr.
    """
    logging.basicConfig(stream=sys.stderr, level=logging.INFO,
                        format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    status = 0
    try:
        raw_input = sys.stdin.read()
        if not raw_input or not raw_input.strip():
            raise ValueError('No input provided for layout generation')
        result = run(json.loads(raw_input))
    except Exception as exc:
        logger.exception("Layout generation failed")
        result = {
            'success': False,
            'ilots': [],
            'corridors': [],
            'statistics': {},
            'error': str(exc),
        }
        status = 1

    sys.stdout.write(json.dumps(result) + '\n')
    sys.stdout.flush()
    return status


if __name__ == "__main__":
    sys.exit(main())
