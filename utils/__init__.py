from utils.param_utils import (normalize_expression
                               , parse_param_assignment
                               , parse_params)
from utils.print_utils import (print_check_results
                               , format_tokens
                               , format_graph_summary
                               , segments_to_dict)
