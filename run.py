import argparse
import time

import torch

from eztransfer.project import Project


def main():
    """
    Main entry point for running a tiled style transfer project.
    Parses command-line arguments, initializes a Project, and runs it.
    """
    parser = argparse.ArgumentParser(
        description="Apply a style reference to a full-resolution photo, tile by tile.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--config",
        type=str,
        required=True,
        help="Path to the project configuration YAML file.",
    )
    args = parser.parse_args()

    # --- Welcome Message & Environment Check ---
    print("========================================")
    print("         Starting ReEzTransfer          ")
    print("========================================")

    if torch.cuda.is_available():
        print(f"CUDA is available. Using GPU: {torch.cuda.get_device_name(0)}")
    else:
        print("CUDA not found. Running on CPU.")

    start_time = time.time()
    exit_code = 0
    project = None

    try:
        # --- Project Initialization ---
        print(f"\nLoading project with configuration: {args.config}")
        project = Project(config_path=args.config)

        # --- Pipeline Execution ---
        result = project.run()
        if not result.success:
            exit_code = 1

    except FileNotFoundError as e:
        print(f"\n[ERROR] A required file or directory was not found: {e}")
        print("Please check the paths in your configuration file.")
        exit_code = 1
    except Exception as e:
        print(f"\n[ERROR] An unexpected error occurred: {e}")
        import traceback

        traceback.print_exc()
        exit_code = 1

    finally:
        if project is not None:
            project.close()
        end_time = time.time()
        print("\n----------------------------------------")
        print(f"Pipeline finished in {end_time - start_time:.2f} seconds.")
        print("========================================")

    return exit_code


if __name__ == "__main__":
    raise SystemExit(main())
