# -*- coding: utf-8 -*-
#


# 処理できないデータ
class SizingException(Exception):
    def __init__(self, message, stage=None):
        super().__init__(message)
        self.message = message
        self.stage = stage

    def __str__(self):
        if self.stage:
            return "[{0}] {1}".format(self.stage, self.message)
        return self.message


# 拡張子不正
class MExtInvalidException(SizingException):
    pass


# ファイルなし
class MFileNotFoundException(SizingException):
    pass


# GLB/JSON/アクセサ不正、ノード循環
class MParseException(SizingException):
    pass


# 未対応形式(GLBバージョン、スパース、VRM拡張なし)
class MFormatUnsupportedException(SizingException):
    pass


# 変換後モデル不正
class MModelInvalidException(SizingException):
    pass


# 入出力失敗
class MIoFailedException(SizingException):
    pass
