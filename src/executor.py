# -*- coding: utf-8 -*-
#

import os
import sys
import argparse
import logging
import numpy as np

from module.MOptions import MExportOptions, MBatchOptions
from service.VrmExportService import VrmExportService
from utils.MLogger import MLogger
from utils.MException import SizingException
from utils import MFileUtils

VERSION_NAME = "1.00.00"

EXIT_SUCCESS = 0
EXIT_ARGUMENT_ERROR = 2
EXIT_CONVERT_ERROR = 1

# 指数表記なし、有効小数点桁数6、30を超えると省略あり、一行の文字数200
np.set_printoptions(suppress=True, precision=6, threshold=30, linewidth=200)


def create_parser():
    parser = argparse.ArgumentParser(prog="vrm2pmx", description="VRM(glTF) モデルを PMX に変換します")
    parser.add_argument("inputs", nargs="*", help="変換元VRMファイル")
    parser.add_argument("-in", dest="input_paths", action="append", default=[], help="変換元VRMファイル(複数指定可)")
    parser.add_argument("-out", dest="output_path", default=None, help="出力PMXファイル(入力が1件の場合のみ)")
    parser.add_argument("-output-root", dest="output_root", default=None, help="出力ルートディレクトリ")
    parser.add_argument("-dry-run", dest="dry_run", action="store_true", help="検証のみ行い、何も出力しない")
    parser.add_argument("-fail-fast", dest="fail_fast", action="store_true", help="最初の失敗で中断する")
    parser.add_argument("--verbose", default=20, type=int)
    parser.add_argument("--log_mode", default=0, type=int)
    parser.add_argument("--out_log", default=0, type=int)
    parser.add_argument("--lang", default="ja_JP", type=str)
    return parser


def parse_batch_options(parser: argparse.ArgumentParser, argv=None):
    args = parser.parse_args(argv)

    input_paths = list(args.inputs) + list(args.input_paths)
    if not input_paths:
        parser.error("変換元VRMファイルを指定してください")
    if args.output_path and len(input_paths) > 1:
        parser.error("-out は入力が1件の場合のみ指定できます")
    if args.output_path and args.output_root:
        parser.error("-out と -output-root は同時に指定できません")

    return args, MBatchOptions(input_paths, args.output_path, args.output_root, args.dry_run, args.fail_fast)


def main(argv=None):
    parser = create_parser()
    try:
        args, batch_options = parse_batch_options(parser, argv)
    except SystemExit as e:
        return e.code if isinstance(e.code, int) else EXIT_ARGUMENT_ERROR

    is_out_log = True if args.out_log == 1 else False

    MLogger.initialize(level=args.verbose, is_file=is_out_log, target_lang=args.lang, mode=args.log_mode)
    logger = MLogger(__name__)

    failed_count = 0
    for input_path in batch_options.input_paths:
        output_path = MFileUtils.get_output_pmx_path(input_path, batch_options.output_path, batch_options.output_root)
        options = MExportOptions(VERSION_NAME, args.verbose, input_path, output_path, is_file=is_out_log, outout_datetime=MLogger.outout_datetime)

        if batch_options.dry_run:
            try:
                VrmExportService(options).load_model()
                logger.info("検証OK: %s -> %s", input_path, output_path)
                result = True
            except SizingException as se:
                logger.error("検証NG: %s\n\n%s", input_path, str(se), decoration=MLogger.DECORATION_BOX)
                result = False
        else:
            result = VrmExportService(options).execute()

        if not result:
            failed_count += 1
            if batch_options.fail_fast:
                break

    # 全件処理後にログを閉じる
    logging.shutdown()

    if failed_count > 0:
        logger.warning("変換に失敗したモデルがあります: %s/%s", failed_count, len(batch_options.input_paths))
        return EXIT_CONVERT_ERROR

    if os.name == "nt" and not batch_options.dry_run:
        import winsound  # Windows版のみインポート

        # 終了音を鳴らす
        winsound.PlaySound("SystemAsterisk", winsound.SND_ALIAS)

    return EXIT_SUCCESS


if __name__ == "__main__":
    sys.exit(main())
