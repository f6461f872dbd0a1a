import argparse, json, logging
from ..core.config import Config, load_config
from ..core.runner import rank
from ..data.wire import request_from_dict, response_to_dict
from ..plugins.eval.metrics import diversity_metrics


def main(argv: list[str] | None = None):
    ap = argparse.ArgumentParser(description="Rank a JSON request file")
    ap.add_argument("--request", required=True, help="Path to a camelCase RankRequest JSON")
    ap.add_argument("--config", help="YAML with process-level `params` overrides")
    ap.add_argument("--metrics", action="store_true", help="Append slate diversity metrics")
    ap.add_argument("--log-level", default="WARNING")
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    cfg: Config | None = load_config(args.config) if args.config else None
    with open(args.request, "r", encoding="utf-8") as f:
        req = request_from_dict(json.load(f))

    resp = rank(req, config=cfg)
    out = response_to_dict(resp)
    if args.metrics:
        by_key = {c.item_key: c for c in req.candidates}
        out["metrics"] = diversity_metrics([by_key[i.item_key] for i in resp.ranked])
    print(json.dumps(out, ensure_ascii=False))


if __name__ == "__main__":
    main()
