# -*- coding: utf-8 -*-
#
from datetime import datetime
import logging
import traceback
import sys
import os
import json
import locale

import cython


class MLogger():

    DECORATION_IN_BOX = "in_box"
    DECORATION_BOX = "box"
    DECORATION_LINE = "line"
    DEFAULT_FORMAT = "%(message)s [%(funcName)s][P-%(process)s](%(asctime)s)"

    DEBUG_FULL = 2
    TEST = 5
    TIMER = 12
    FULL = 15
    DEBUG_INFO = 16
    INFO_DEBUG = 22
    DEBUG = logging.DEBUG       # 10
    INFO = logging.INFO         # 20
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL

    # 翻訳モード
    # 読み取り専用：翻訳リストにない文字列は入力文字列をそのまま出力する
    MODE_READONLY = 0
    # 更新あり：翻訳リストにない文字列は出力する
    MODE_UPDATE = 1

    # 囲み表示の見出し
    BOX_TITLES = {
        logging.CRITICAL: "**CRITICAL**",
        logging.ERROR: "**ERROR**",
        logging.WARNING: "**WARNING**",
    }
    BOX_BORDER = "■■■■■■■■■■■■■■■■■"

    total_level = logging.INFO
    is_file = False
    mode = MODE_READONLY
    outout_datetime = ""

    # 翻訳言語優先順位
    langs = ["en_US", "ja_JP", "zh_CN"]
    # 出力対象言語
    target_lang = "ja_JP"

    messages = {}

    def __init__(self, module_name, level=logging.INFO):
        self.module_name = module_name
        self.default_level = level

        # モジュール単位のロガー(ファイル出力時のみハンドラ経由)
        self.logger = logging.getLogger("Vrm2Pmx").getChild(self.module_name)
        self.logger.propagate = False
        self.file_handler = None

    def test(self, msg, *args, **kwargs):
        kwargs["level"] = self.TEST
        kwargs["time"] = True
        self.print_logger(msg, *args, **kwargs)

    def debug(self, msg, *args, **kwargs):
        kwargs["level"] = logging.DEBUG
        kwargs["time"] = True
        self.print_logger(msg, *args, **kwargs)

    def info(self, msg, *args, **kwargs):
        kwargs["level"] = logging.INFO
        self.print_logger(msg, *args, **kwargs)

    def warning(self, msg, *args, **kwargs):
        kwargs["level"] = logging.WARNING
        self.print_logger(msg, *args, **kwargs)

    def error(self, msg, *args, **kwargs):
        kwargs["level"] = logging.ERROR
        self.print_logger(msg, *args, **kwargs)

    def critical(self, msg, *args, **kwargs):
        kwargs["level"] = logging.CRITICAL
        self.print_logger(msg, *args, **kwargs)

    def is_enabled(self, target_level: int):
        return self.total_level <= target_level and self.default_level <= target_level

    def print_logger(self, org_msg, *args, **kwargs):
        target_level = kwargs.pop("level", logging.INFO)
        if not self.is_enabled(target_level):
            return

        output_msg = self.create_message(org_msg, args, target_level, **kwargs)

        if self.is_file:
            # ファイル出力ありの場合、ハンドラ経由で出力
            self.attach_file_handler()
            log_record = self.logger.makeRecord("Vrm2Pmx", target_level, "(unknown file)", 0, output_msg, None, None, self.module_name)
            self.logger.handle(log_record)

        print_message(output_msg, target_level)

    # 翻訳・引数展開・装飾済みの出力文字列
    def create_message(self, org_msg, args, target_level: int, translate=True, decoration=None, title=None, time=False):
        msg = self.transtext(org_msg) if translate and target_level >= self.INFO else org_msg

        if args and isinstance(args[0], Exception):
            msg = "{0}\n\n{1}".format(msg, traceback.format_exc())
            args = ()

        print_msg = msg % args if args else msg
        if time:
            # 時間表記
            print_msg = "{message} [{funcName}]({now:%H:%M:%S.%f})".format(message=print_msg, funcName=self.module_name, now=datetime.now())

        if decoration == MLogger.DECORATION_BOX:
            return self.create_box_message(print_msg, target_level, title)
        elif decoration == MLogger.DECORATION_LINE:
            return "\n".join("■■ {0} --------------------".format(line) for line in print_msg.split("\n"))
        elif decoration == MLogger.DECORATION_IN_BOX:
            return "\n".join("■　{0}".format(line) for line in print_msg.split("\n"))

        return print_msg

    def create_box_message(self, msg, level, title=None):
        msg_block = [self.BOX_BORDER]

        if level in self.BOX_TITLES:
            msg_block.append("■　{0}　".format(self.BOX_TITLES[level]))
        elif title:
            msg_block.append("■　**{0}**　".format(title))

        msg_block.extend("■　{0}".format(line) for line in msg.split("\n"))
        msg_block.append(self.BOX_BORDER)

        return "\n".join(msg_block)

    def attach_file_handler(self):
        if self.file_handler:
            return

        os.makedirs("log", exist_ok=True)
        self.file_handler = logging.FileHandler("log/Vrm2Pmx_{0}.log".format(self.outout_datetime), encoding="utf-8")
        self.file_handler.setLevel(self.default_level)
        self.file_handler.setFormatter(logging.Formatter(self.DEFAULT_FORMAT))
        self.logger.addHandler(self.file_handler)

    def transtext(self, msg):
        trans_msg = self.messages.get(msg) or msg

        if self.mode == MLogger.MODE_UPDATE:
            # 更新モードである場合、辞書に追記
            for lang in self.langs:
                self.append_message(lang, msg)

        return trans_msg

    def append_message(self, lang: str, msg: str):
        messages_path = self.get_message_path(lang)
        try:
            with open(messages_path, 'r', encoding="utf-8") as f:
                msgs = json.load(f)

            if msg not in msgs:
                # ない場合、追加(オリジナル言語の場合、そのまま。違う場合は空欄)
                msgs[msg] = msg if self.target_lang == lang else ""

                with open(messages_path, 'w', encoding="utf-8") as f:
                    json.dump(msgs, f, ensure_ascii=False)
        except (OSError, ValueError):
            sys.stderr.write("*** Message Update ERROR ***\n{0}\n".format(traceback.format_exc()))

    @classmethod
    def initialize(cls, level=logging.INFO, is_file=False, mode=MODE_READONLY, target_lang=None):
        logging.basicConfig(level=level, format=cls.DEFAULT_FORMAT)
        cls.total_level = level
        cls.is_file = is_file
        cls.mode = mode
        cls.outout_datetime = "{0:%Y%m%d_%H%M%S}".format(datetime.now())

        if mode == MLogger.MODE_UPDATE:
            # 更新版の場合、必要なディレクトリ・ファイルを全部作成する
            for lang in cls.langs:
                messages_path = cls.get_message_path(lang)
                os.makedirs(os.path.dirname(messages_path), exist_ok=True)
                if not os.path.exists(messages_path):
                    with open(messages_path, 'w', encoding="utf-8") as f:
                        json.dump({}, f, ensure_ascii=False)

        if target_lang in cls.langs:
            # 言語指定あり
            cls.target_lang = target_lang
        else:
            # 実行環境に応じたローカル言語
            lang = locale.getlocale()[0]
            cls.target_lang = lang if lang in cls.langs else cls.langs[0]

        # メッセージファイルがない場合、原文のまま出力する
        cls.messages = {}
        messages_path = cls.get_message_path(cls.target_lang)
        if os.path.exists(messages_path):
            try:
                with open(messages_path, 'r', encoding="utf-8") as f:
                    cls.messages = json.load(f)
            except (OSError, ValueError):
                sys.stderr.write("*** Message Load ERROR ***\n{0}\n".format(traceback.format_exc()))

    @classmethod
    def get_message_path(cls, lang):
        return resource_path(os.path.join("src", "locale", lang, "messages.json"))


# リソースファイルのパス
def resource_path(relative):
    if hasattr(sys, '_MEIPASS'):
        return os.path.join(sys._MEIPASS, relative)
    return os.path.join(relative)


@cython.ccall
def print_message(msg: str, target_level: int):
    if target_level >= MLogger.WARNING:
        sys.stderr.write(msg + "\n")
    else:
        sys.stdout.write(msg + "\n")
