"""Pinyin normalization and tone-insensitive-format comparison."""

import re
import unicodedata
from typing import NamedTuple, Optional


TONE_MARKS = {
    'a': 'āáǎàa',
    'e': 'ēéěèe',
    'i': 'īíǐìi',
    'o': 'ōóǒòo',
    'u': 'ūúǔùu',
    'ü': 'ǖǘǚǜü',
}
VOWELS = 'aeiouü'
NEUTRAL_TONE = 5

TOKEN_PATTERN = re.compile(r'^([a-zü:]+)([1-5]?)$', re.IGNORECASE)
RUN_PATTERN = re.compile(r'(\D+)([1-5]?)')
CHUNK_PATTERN = re.compile(r'\D+(?:[1-5]\D+)*[1-5]?')
CHUNK_SEPARATORS = re.compile(r"[\s'’\-]+")

# Combining marks left behind by NFD decomposition of tone-marked vowels
COMBINING_TONES = {
    '\u0304': 1,  # macron
    '\u0301': 2,  # acute
    '\u030c': 3,  # caron
    '\u0300': 4,  # grave
}
COMBINING_DIAERESIS = '\u0308'

SYLLABLES = frozenset("""
a ai an ang ao
ba bai ban bang bao bei ben beng bi bian biao bie bin bing bo bu
ca cai can cang cao ce cen ceng cha chai chan chang chao che chen cheng chi
chong chou chu chua chuai chuan chuang chui chun chuo ci cong cou cu cuan cui
cun cuo
da dai dan dang dao de dei den deng di dia dian diao die ding diu dong dou du
duan dui dun duo
e ei en eng er
fa fan fang fei fen feng fo fou fu
ga gai gan gang gao ge gei gen geng gong gou gu gua guai guan guang gui gun guo
ha hai han hang hao he hei hen heng hong hou hu hua huai huan huang hui hun huo
ji jia jian jiang jiao jie jin jing jiong jiu ju juan jue jun
ka kai kan kang kao ke kei ken keng kong kou ku kua kuai kuan kuang kui kun kuo
la lai lan lang lao le lei leng li lia lian liang liao lie lin ling liu lo long
lou lu luan lun luo lü lüe
ma mai man mang mao me mei men meng mi mian miao mie min ming miu mo mou mu
na nai nan nang nao ne nei nen neng ni nian niang niao nie nin ning niu nong
nou nu nuan nun nuo nü nüe
o ou
pa pai pan pang pao pei pen peng pi pian piao pie pin ping po pou pu
qi qia qian qiang qiao qie qin qing qiong qiu qu quan que qun
ran rang rao re ren reng ri rong rou ru rua ruan rui run ruo
sa sai san sang sao se sen seng sha shai shan shang shao she shei shen sheng shi
shou shu shua shuai shuan shuang shui shun shuo si song sou su suan sui sun suo
ta tai tan tang tao te teng ti tian tiao tie ting tong tou tu tuan tui tun tuo
wa wai wan wang wei wen weng wo wu
xi xia xian xiang xiao xie xin xing xiong xiu xu xuan xue xun
ya yan yang yao ye yi yin ying yo yong you yu yuan yue yun
za zai zan zang zao ze zei zen zeng zha zhai zhan zhang zhao zhe zhei zhen zheng
zhi zhong zhou zhu zhua zhuai zhuan zhuang zhui zhun zhuo zi zong zou zu zuan
zui zun zuo
""".split())
MAX_SYLLABLE_LENGTH = max(len(s) for s in SYLLABLES)
# Longer answers are not read as pinyin at all
MAX_INPUT_LENGTH = 200


class PhonemeToken(NamedTuple):
    """A single pinyin syllable: base letters plus tone (5 = neutral)."""
    letters: str
    tone: int = NEUTRAL_TONE

    def __str__(self) -> str:
        return f"{self.letters}{self.tone}"

    def to_diacritic(self) -> str:
        return to_diacritic(str(self))


def _substitute_u(text: str) -> str:
    return text.lower().replace('v', 'ü').replace('u:', 'ü')


def _mark_syllable(token: str) -> str:
    match = TOKEN_PATTERN.match(token)
    if not match:
        return token

    base = _substitute_u(match.group(1))
    tone = int(match.group(2) or NEUTRAL_TONE)
    if tone == NEUTRAL_TONE:
        return base

    if 'a' in base:
        index = base.index('a')
    elif 'e' in base:
        index = base.index('e')
    elif 'ou' in base:
        index = base.index('ou')
    else:
        index = -1
        for i in range(len(base) - 1, -1, -1):
            if base[i] in VOWELS:
                index = i
                break

    if index == -1:
        return base

    vowel = base[index]
    return base[:index] + TONE_MARKS[vowel][tone - 1] + base[index + 1:]


def to_diacritic(text: str) -> str:
    """Convert tone-numbered pinyin ("ni3 hao3") to tone marks ("nǐ hǎo").

    Tokens that are not letters plus an optional tone digit are returned
    verbatim, so already-marked text passes through unchanged.
    """
    if not text:
        return ''
    return ' '.join(_mark_syllable(token) for token in text.split())


def _normalize(text: str) -> str:
    text = unicodedata.normalize('NFC', text.strip())
    return _substitute_u(re.sub(r'\s+', '', text))


def _split_marks(text: str) -> tuple[str, dict]:
    """Strip tone marks. Returns (base letters, {base index: tone})."""
    base = []
    marks = {}
    for ch in unicodedata.normalize('NFD', text):
        if ch in COMBINING_TONES and base:
            marks[len(base) - 1] = COMBINING_TONES[ch]
        elif ch == COMBINING_DIAERESIS and base and base[-1] == 'u':
            base[-1] = 'ü'
        else:
            base.append(ch)
    return ''.join(base), marks


def _segment(letters: str) -> Optional[list[tuple[int, int]]]:
    """Split a run of letters into known syllables, longest match first.

    next_end[i] is the end of the longest syllable at i whose remainder
    also splits, filled from the right so each position is visited once.
    """
    size = len(letters)
    if size > MAX_INPUT_LENGTH:
        return None
    next_end = [None] * (size + 1)
    next_end[size] = size
    for start in range(size - 1, -1, -1):
        for end in range(min(size, start + MAX_SYLLABLE_LENGTH), start, -1):
            if next_end[end] is not None and letters[start:end] in SYLLABLES:
                next_end[start] = end
                break
    if next_end[0] is None:
        return None

    spans = []
    start = 0
    while start < size:
        spans.append((start, next_end[start]))
        start = next_end[start]
    return spans


def _run_syllables(run: str, digit: str) -> Optional[list[PhonemeToken]]:
    base, marks = _split_marks(run)
    if digit and marks:
        # Mixed notation such as "hǎo3" is refused
        return None

    spans = _segment(base)
    if spans is None:
        if len(marks) > 1:
            return [PhonemeToken(run)]
        tone = int(digit) if digit else next(iter(marks.values()), NEUTRAL_TONE)
        return [PhonemeToken(base, tone)]

    tokens = []
    for start, end in spans:
        inside = [tone for index, tone in marks.items() if start <= index < end]
        if len(inside) > 1:
            return None
        if digit:
            tone = int(digit)
        else:
            tone = inside[0] if inside else NEUTRAL_TONE
        tokens.append(PhonemeToken(base[start:end], tone))
    return tokens


def parse_syllables(text: str) -> Optional[list[PhonemeToken]]:
    """Parse free-form pinyin into syllables.

    Accepts numbered, tone-marked and run-together input. A tone digit
    closing a run applies to every syllable of that run. Returns None
    for text that cannot be read as pinyin (e.g. mixed notation) or that
    is longer than MAX_INPUT_LENGTH.
    """
    if not text or len(text) > MAX_INPUT_LENGTH:
        return None
    tokens = []
    for chunk in CHUNK_SEPARATORS.split(_substitute_u(text.strip())):
        if not chunk:
            continue
        if not CHUNK_PATTERN.fullmatch(chunk):
            return None
        for run, digit in RUN_PATTERN.findall(chunk):
            syllables = _run_syllables(run, digit)
            if syllables is None:
                return None
            tokens.extend(syllables)
    return tokens or None


def parse_token(token: str) -> Optional[PhonemeToken]:
    """Parse one numbered ("hao3") or marked ("hǎo") syllable."""
    if not token:
        return None
    match = re.fullmatch(r'(\D+)([1-5]?)', _substitute_u(token.strip()))
    if not match:
        return None
    letters, digit = match.groups()
    base, marks = _split_marks(letters)
    if not re.fullmatch(r'[a-zü]+', base) or len(marks) > 1 or (digit and marks):
        return None
    if digit:
        return PhonemeToken(base, int(digit))
    return PhonemeToken(base, next(iter(marks.values()), NEUTRAL_TONE))


def phonetic_equal(a: str, b: str) -> bool:
    """Whitespace- and notation-insensitive pinyin comparison.

    "hao3" == "hǎo", "ni3 hao3" == "nihao3"; tones must still agree.
    """
    if not a or not b:
        return False

    if _normalize(a) == _normalize(b):
        return True

    if _normalize(to_diacritic(a)) == _normalize(to_diacritic(b)):
        return True

    left = parse_syllables(a)
    return left is not None and left == parse_syllables(b)
